"""In-memory search index backend."""
