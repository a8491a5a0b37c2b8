"""Logging, error handling and parallel execution helpers."""
