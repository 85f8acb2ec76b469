"""Client-side access layer for a SimpleDB-style attribute store."""

__version__ = "0.1.0"
