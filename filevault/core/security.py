"""Password hashing and bearer-token issue/verification."""

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from filevault.core.config import Settings, settings

ROLE_ADMIN = "Admin"
ROLE_USER = "User"
VALID_ROLES = (ROLE_ADMIN, ROLE_USER)

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 50
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 255


class TokenError(Exception):
    """Token could not be verified. Callers must not distinguish the subclasses."""


class TokenMalformed(TokenError):
    """Token is not a well-formed signed payload."""


class TokenBadSignature(TokenError):
    """Token was signed with another secret or altered after signing."""


class TokenExpired(TokenError):
    """Token signature is valid but its expiry has passed."""


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors.
    pw_bytes = plain_password.encode("utf-8")[:72]
    cost = rounds if rounds is not None else settings.BCRYPT_ROUNDS
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def issue_token(
    claims: dict[str, Any],
    secret: str,
    ttl: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Sign claims plus an absolute expiry (now + ttl) into a bearer token."""
    if ttl <= timedelta(0):
        raise ValueError("ttl must be positive")
    payload = dict(claims)
    payload["exp"] = datetime.now(UTC) + ttl
    return jwt.encode(payload, secret, algorithm=algorithm)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """
    Verify signature, then expiry; return the decoded claims (including exp).

    Raises a TokenError subclass on any failure.
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except jwt.InvalidSignatureError as e:
        raise TokenBadSignature(str(e)) from e
    except jwt.PyJWTError as e:
        raise TokenMalformed(str(e)) from e


def create_access_token(user_id: str, role: str, cfg: Settings | None = None) -> str:
    """Create the login token carrying userId and role."""
    cfg = cfg or settings
    return issue_token(
        {"userId": str(user_id), "role": role},
        cfg.JWT_SECRET.get_secret_value(),
        timedelta(minutes=cfg.JWT_EXPIRE_MINUTES),
        algorithm=cfg.JWT_ALGORITHM,
    )


def decode_access_token(token: str, cfg: Settings | None = None) -> dict[str, Any]:
    """Verify a token with the configured secret and algorithm."""
    cfg = cfg or settings
    return verify_token(
        token,
        cfg.JWT_SECRET.get_secret_value(),
        algorithm=cfg.JWT_ALGORITHM,
    )
