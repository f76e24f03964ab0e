"""Small helpers shared across the roster client."""
