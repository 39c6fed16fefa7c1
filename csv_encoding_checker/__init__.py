"""CSV encoding checker: runs R and Python measurement scripts per encoding."""

__version__ = "0.1.0"
