"""Remote bucket providers."""
