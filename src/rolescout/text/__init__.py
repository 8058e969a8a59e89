"""Text helpers: title normalization and named extraction rules."""
