"""Core services for Crossposter."""
