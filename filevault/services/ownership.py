"""Ownership rule for file resources: the owner or any Admin may act on a file."""

import re

from sqlalchemy.orm import Session

from filevault.core.errors import Forbidden, NotFound, ValidationFailed
from filevault.core.security import ROLE_ADMIN
from filevault.models import StoredFile
from filevault.schemas.auth import Principal

_FILE_ID = re.compile(r"[0-9]+")


def can_access(principal: Principal, owner_id: str) -> bool:
    """True iff the principal is an Admin or owns the resource."""
    return principal.role == ROLE_ADMIN or principal.user_id == owner_id


def parse_file_id(file_id: object) -> int:
    if not isinstance(file_id, str) or not _FILE_ID.fullmatch(file_id):
        raise ValidationFailed("Invalid file ID")
    return int(file_id)


def load_owned_file(db: Session, file_id: object, principal: Principal) -> StoredFile:
    """
    Fetch a file the principal may act on.

    Existence is checked first (404), then ownership (403). A non-owner gets
    403 even though that reveals the file exists.
    """
    record = db.get(StoredFile, parse_file_id(file_id))
    if record is None:
        raise NotFound("File not found")
    if not can_access(principal, record.user_id):
        raise Forbidden()
    return record
