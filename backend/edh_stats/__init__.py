"""EDH Stats data-access layer: credentials, repositories and statistics."""

__version__ = "1.0.0"
