"""pacs - Project Aware Command Storage."""

__version__ = "0.1.0"
