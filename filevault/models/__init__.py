"""SQLAlchemy ORM models."""

from filevault.models.base import Base
from filevault.models.counter import Counter
from filevault.models.stored_file import StoredFile
from filevault.models.user import User

__all__ = ["Base", "Counter", "StoredFile", "User"]
