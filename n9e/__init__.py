"""SQLite-backed data models and helpers for an alerting and monitoring management service."""

__version__ = "5.9.6"

__all__ = ["__version__"]