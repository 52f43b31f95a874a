"""HTTP surface for Crossposter."""
