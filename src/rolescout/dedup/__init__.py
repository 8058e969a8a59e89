"""Franchise grouping and deduplication."""
