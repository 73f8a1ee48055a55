"""Level-cached data store.

This package reads per-level array files, keeps one persistence level
resident, and derives the normalized statistics renderers consume.
"""
