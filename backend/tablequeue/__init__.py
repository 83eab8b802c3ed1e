"""Table Queue - virtual waiting lists for campus dining halls."""

__version__ = "1.0.0"
