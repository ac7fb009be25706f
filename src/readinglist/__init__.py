"""Personal reading list with AI summaries and tags."""

__version__ = "0.1.0"
