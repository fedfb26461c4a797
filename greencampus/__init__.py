"""greencampus — campus sustainability metrics core."""

__version__ = "0.1.0"
