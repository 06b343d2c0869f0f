"""Session performance aggregation and classification for therapy programs."""

__version__ = "0.1.0"
