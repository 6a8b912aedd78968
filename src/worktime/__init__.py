"""Personal work-time tracker with statutory break handling."""

__version__ = "0.3.0"
