"""MeetCute backend: environment configuration and database bootstrap."""

__version__ = "0.1.0"
