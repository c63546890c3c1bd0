"""Provider interface."""
