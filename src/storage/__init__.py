"""Storage layer: connection pool and the shared content store."""

from src.storage.database import Database
from src.storage.repository import ContentRepository

__all__ = ["Database", "ContentRepository"]
