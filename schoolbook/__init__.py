"""Schoolbook — appointment scheduling for school tutoring sessions."""

__version__ = "0.1.0"
