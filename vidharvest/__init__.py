"""Single-video harvester for YouTube metadata, comments and captions."""

__version__ = "0.1.0"
