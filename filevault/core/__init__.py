"""Core app configuration, database, security and access control."""

from filevault.core.config import get_settings, settings
from filevault.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
