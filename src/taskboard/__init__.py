"""Taskboard — Stage and Task records kept in a primary store and mirrored into a search index."""

__version__ = "0.1.0"
