"""Synchronizer, query service and engine."""
