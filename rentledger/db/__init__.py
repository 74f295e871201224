"""
Database init - Exports for services
"""

from .base import Base, TimestampMixin

__all__ = ["Base", "TimestampMixin"]
