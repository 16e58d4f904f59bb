"""Access-control gate: bearer-token verification plus the static endpoint rule table.

Every request is checked by ``AccessControlGate`` before it reaches a route:

1. Public endpoints bypass the gate entirely.
2. A missing ``Authorization: Bearer <token>`` header yields 401.
3. A token that fails verification (malformed, bad signature, expired) yields 403.
4. The first rule whose method matches, whose path regex fully matches the
   request path and whose role set contains the token's role admits the
   request; otherwise 403.

The decoded principal is stored on ``request.state.principal``.
"""

import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass

from fastapi import Request, Response, status

from filevault.core.config import Settings
from filevault.core.errors import Unauthenticated, error_response
from filevault.core.security import (
    ROLE_ADMIN,
    ROLE_USER,
    VALID_ROLES,
    TokenError,
    decode_access_token,
)
from filevault.schemas.auth import Principal

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AccessRule:
    """One row of the rule table: method, compiled full-match path pattern, roles."""

    method: str
    pattern: re.Pattern[str]
    roles: frozenset[str]

    def admits(self, method: str, path: str, role: str) -> bool:
        return (
            self.method == method
            and self.pattern.fullmatch(path) is not None
            and role in self.roles
        )


@dataclass(frozen=True)
class EndpointPattern:
    """A method plus full-match path pattern, used for the public (bypass) list."""

    method: str
    pattern: re.Pattern[str]

    def matches(self, method: str, path: str) -> bool:
        return self.method == method and self.pattern.fullmatch(path) is not None


def rule(method: str, path_pattern: str, *roles: str) -> AccessRule:
    unknown = set(roles) - set(VALID_ROLES)
    if unknown:
        raise ValueError(f"Unknown roles in rule {method} {path_pattern}: {sorted(unknown)}")
    return AccessRule(method.upper(), re.compile(path_pattern), frozenset(roles))


def parse_endpoints(entries: Iterable[str]) -> tuple[EndpointPattern, ...]:
    """Parse "<METHOD> <path-regex>" strings (e.g. "POST /login")."""
    parsed = []
    for entry in entries:
        method, sep, path_pattern = entry.strip().partition(" ")
        if not sep or not path_pattern.strip():
            raise ValueError(f"Endpoint must look like '<METHOD> <path>': {entry!r}")
        parsed.append(EndpointPattern(method.upper(), re.compile(path_pattern.strip())))
    return tuple(parsed)


# Order matters: the first matching rule wins.
USERS_RULES: tuple[AccessRule, ...] = (
    rule("GET", "/login", ROLE_ADMIN, ROLE_USER),
    rule("GET", "/logout", ROLE_ADMIN, ROLE_USER),
    rule("GET", "/admin", ROLE_ADMIN),
    rule("POST", "/admin/create_user", ROLE_ADMIN),
    rule("DELETE", "/admin/delete_user/[0-9]+", ROLE_ADMIN),
)

FILES_RULES: tuple[AccessRule, ...] = (
    rule("GET", "/", ROLE_ADMIN, ROLE_USER),
    rule("POST", "/", ROLE_ADMIN, ROLE_USER),
    rule("DELETE", "/[0-9]+", ROLE_ADMIN, ROLE_USER),
    rule("GET", "/[0-9]+/download", ROLE_ADMIN, ROLE_USER),
    rule("DELETE", "/users/[0-9]+", ROLE_ADMIN),
)


def find_rule(
    rules: Sequence[AccessRule], method: str, path: str, role: str
) -> AccessRule | None:
    """Return the first rule admitting (method, path, role), or None."""
    return next((r for r in rules if r.admits(method, path, role)), None)


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def principal_from_claims(claims: dict) -> Principal | None:
    user_id = claims.get("userId")
    role = claims.get("role")
    if not isinstance(user_id, str) or not user_id or role not in VALID_ROLES:
        return None
    return Principal(user_id=user_id, role=role)


class AccessControlGate:
    """HTTP middleware enforcing the rule table for one service."""

    def __init__(
        self,
        rules: Sequence[AccessRule],
        public_endpoints: Iterable[str],
        cfg: Settings,
    ) -> None:
        self.rules = tuple(rules)
        self.public_endpoints = parse_endpoints(public_endpoints)
        self.settings = cfg

    def is_public(self, method: str, path: str) -> bool:
        if method == "OPTIONS":
            return True
        return any(p.matches(method, path) for p in self.public_endpoints)

    async def __call__(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        method = request.method.upper()
        path = request.url.path

        if self.is_public(method, path):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            return error_response(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

        try:
            claims = decode_access_token(token, self.settings)
        except TokenError as e:
            logger.info("Rejected token on %s %s: %s", method, path, type(e).__name__)
            return error_response(status.HTTP_403_FORBIDDEN, "Forbidden")

        principal = principal_from_claims(claims)
        if principal is None:
            logger.info("Rejected token without usable claims on %s %s", method, path)
            return error_response(status.HTTP_403_FORBIDDEN, "Forbidden")

        if find_rule(self.rules, method, path, principal.role) is None:
            logger.info(
                "No rule admits %s %s for role %s", method, path, principal.role
            )
            return error_response(status.HTTP_403_FORBIDDEN, "Forbidden")

        request.state.principal = principal
        return await call_next(request)


def get_principal(request: Request) -> Principal:
    """Dependency: the principal attached by the gate. Raises 401 if absent."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise Unauthenticated()
    return principal
