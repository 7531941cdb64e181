"""Output renderers."""
