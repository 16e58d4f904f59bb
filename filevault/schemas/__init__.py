"""Pydantic request/response schemas."""

from filevault.schemas.auth import (
    AccountOut,
    CreateUserRequest,
    LoginRequest,
    Principal,
    PrincipalResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from filevault.schemas.common import MessageResponse
from filevault.schemas.files import CascadeResponse, FileOut
from filevault.schemas.health import HealthResponse

__all__ = [
    "AccountOut",
    "CascadeResponse",
    "CreateUserRequest",
    "FileOut",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "Principal",
    "PrincipalResponse",
    "RegisterRequest",
    "RegisterResponse",
    "TokenResponse",
]
