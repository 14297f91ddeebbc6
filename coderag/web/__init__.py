"""HTTP API for indexing, search and review."""
