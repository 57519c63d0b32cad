"""muxlog: minimal ASGI server skeleton with structured request logging."""

__version__ = "1.0.0"
