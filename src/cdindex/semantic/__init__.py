"""Language-specific semantic providers."""
