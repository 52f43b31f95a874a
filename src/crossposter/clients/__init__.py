"""External service clients for Crossposter."""
