"""Core indexing and classification."""
