"""Fee-due lifecycle scheduler and reminder service."""

__version__ = "1.0.0"
