"""Account service: credential checks, registration, listing and removal."""

import logging
import re
from collections.abc import Callable
from functools import lru_cache
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filevault.core.errors import InvalidCredentials, NotFound, ValidationFailed
from filevault.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    ROLE_USER,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    VALID_ROLES,
    create_access_token,
    hash_password,
    verify_password,
)
from filevault.models import User
from filevault.models.counter import USER_ID_SEQUENCE, next_sequence
from filevault.schemas.auth import AccountOut

if TYPE_CHECKING:
    from filevault.core.config import Settings

logger = logging.getLogger(__name__)

PASSWORD_POLICY_MESSAGE = (
    "Password has to be at least 8 characters long, include one uppercase letter, "
    "one lowercase letter, and one number."
)

_POSITIVE_ID = re.compile(r"[0-9]+")
_PASSWORD_CHARS = re.compile(rf"[A-Za-z0-9]{{{PASSWORD_MIN_LEN},{PASSWORD_MAX_LEN}}}")


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Hash checked when the username is unknown, so both failure branches cost one bcrypt verify."""
    return hash_password("unknown-user-Placeholder1")


def normalize_username(username: object) -> str:
    """Return the trimmed username or raise ValidationFailed."""
    if not isinstance(username, str):
        raise ValidationFailed("Invalid username")
    trimmed = username.strip()
    if not (USERNAME_MIN_LEN <= len(trimmed) <= USERNAME_MAX_LEN):
        raise ValidationFailed("Invalid username")
    return trimmed


def validate_password_policy(password: object) -> str:
    """ASCII letters and digits only, >= 8 chars, with an uppercase letter, a lowercase letter and a digit."""
    if (
        not isinstance(password, str)
        or not _PASSWORD_CHARS.fullmatch(password)
        or not re.search(r"[A-Z]", password)
        or not re.search(r"[a-z]", password)
        or not re.search(r"[0-9]", password)
    ):
        raise ValidationFailed(PASSWORD_POLICY_MESSAGE)
    return password


def validate_role(role: object) -> str:
    """Role defaults to User when omitted or empty; otherwise it must be Admin or User."""
    if not role:
        return ROLE_USER
    if role not in VALID_ROLES:
        raise ValidationFailed("Invalid user role")
    return role


def parse_user_id(user_id: object) -> str:
    if not isinstance(user_id, str) or not _POSITIVE_ID.fullmatch(user_id) or int(user_id) <= 0:
        raise ValidationFailed("Invalid user ID. ID must be a positive number")
    return str(int(user_id))


def authenticate(db: Session, username: object, password: object, settings: "Settings") -> str:
    """
    Check credentials and return a bearer token carrying userId and role.

    Unknown username and wrong password raise the same InvalidCredentials.
    """
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationFailed("Invalid request")
    normalized = username.strip()
    if not normalized:
        raise ValidationFailed("Invalid request")

    user = db.query(User).filter(User.username == normalized).first()
    if user is None:
        verify_password(password, _dummy_hash())
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()

    logger.info("Issued token for userId=%s role=%s", user.user_id, user.role)
    return create_access_token(user.user_id, user.role, settings)


def register_account(
    db: Session,
    username: object,
    password: object,
    role: object = None,
) -> AccountOut:
    """
    Validate, hash, allocate the next userId and persist a new account.

    Every check runs before the store is touched. The existence pre-check is
    backed by the unique index on username.
    """
    normalized = normalize_username(username)
    validate_password_policy(password)
    role_name = validate_role(role)

    if db.query(User.id).filter(User.username == normalized).first() is not None:
        raise ValidationFailed("Username already exists")

    user = User(
        username=normalized,
        password_hash=hash_password(password),
        role=role_name,
    )
    try:
        user.user_id = next_sequence(db, USER_ID_SEQUENCE)
        db.add(user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # Lost a race with a concurrent registration of the same username.
        if db.query(User.id).filter(User.username == normalized).first() is not None:
            raise ValidationFailed("Username already exists") from e
        raise
    db.refresh(user)
    logger.info("Created account userId=%s role=%s", user.user_id, user.role)
    return AccountOut.model_validate(user)


def list_accounts(db: Session) -> list[AccountOut]:
    """All accounts ordered by creation, without password hashes."""
    users = db.query(User).order_by(User.id).all()
    return [AccountOut.model_validate(u) for u in users]


def remove_account(db: Session, user_id: object, cascade: Callable[[str], object]) -> None:
    """
    Delete the account with external id user_id after running cascade(user_id).

    The cascade is best effort: its outcome never blocks the deletion.
    """
    external_id = parse_user_id(user_id)
    user = db.query(User).filter(User.user_id == external_id).first()
    if user is None:
        raise NotFound("User not found")

    cascade(external_id)

    db.delete(user)
    db.commit()
    logger.info("Deleted account userId=%s", external_id)
