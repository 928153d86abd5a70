"""MeiliSearch index backend."""
