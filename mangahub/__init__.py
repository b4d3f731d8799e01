"""Client library and real-time sync bridge for a manga library service."""

__version__ = "1.0.0"