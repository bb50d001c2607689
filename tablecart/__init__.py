"""Session-scoped cart store for the table ordering app."""

__version__ = "0.1.0"
