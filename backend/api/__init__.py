"""QRate HTTP service."""
