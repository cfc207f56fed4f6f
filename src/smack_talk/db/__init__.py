"""Database configuration and utilities."""

from .session import SessionLocal, create_tables, drop_tables

__all__ = ["SessionLocal", "create_tables", "drop_tables"]
