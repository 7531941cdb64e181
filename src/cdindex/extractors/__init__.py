"""Index section extractors."""
