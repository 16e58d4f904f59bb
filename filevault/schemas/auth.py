"""Request/response schemas for authentication and account endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel

RoleName = Literal["Admin", "User"]


class Principal(BaseModel):
    """Identity and role decoded from a verified bearer token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: RoleName


class PrincipalResponse(BaseModel):
    """Response for GET /login: who the presented token belongs to."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    role: RoleName


class LoginRequest(BaseModel):
    """Credentials for login. Policy checks happen in the account service."""

    username: StrictStr = Field(..., description="Username")
    password: StrictStr = Field(..., description="Password")


class TokenResponse(BaseModel):
    """Bearer token returned after successful login."""

    token: str = Field(..., description="Send as Authorization: Bearer <token>")


class RegisterRequest(BaseModel):
    """Self-service registration; role defaults to User when omitted."""

    username: StrictStr
    password: StrictStr
    role: StrictStr | None = None


class CreateUserRequest(BaseModel):
    """Admin account creation; role is required."""

    username: StrictStr
    password: StrictStr
    role: StrictStr


class RegisterResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = "User registered successfully"
    user_id: str


class AccountOut(BaseModel):
    """Outward account representation. Never carries the password hash."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    user_id: str
    username: str
    role: RoleName
    created_at: datetime | None = None
