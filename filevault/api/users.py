"""Users service routes: login, registration and admin account management."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from filevault.api.deps import get_app_settings, get_storage
from filevault.core.access import get_principal
from filevault.core.config import Settings
from filevault.core.database import get_db
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
from filevault.services.accounts import (
    authenticate,
    list_accounts,
    register_account,
    remove_account,
)
from filevault.services.cascade import run_cascade
from filevault.services.storage import FileStorage

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> TokenResponse:
    """
    Authenticate with username and password; returns a bearer token valid for one hour.
    Include the token in the Authorization header as: Bearer <token>
    """
    return TokenResponse(token=authenticate(db, body.username, body.password, settings))


@router.get("/login", response_model=PrincipalResponse)
def whoami(principal: Annotated[Principal, Depends(get_principal)]) -> PrincipalResponse:
    """Echo the principal the presented token belongs to."""
    return PrincipalResponse(user_id=principal.user_id, role=principal.role)


@router.get("/logout", response_model=MessageResponse)
def logout(_principal: Annotated[Principal, Depends(get_principal)]) -> MessageResponse:
    """Tokens are stateless: the client discards its token, nothing is revoked."""
    return MessageResponse(message="Logged out successfully")


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> RegisterResponse:
    account = register_account(db, body.username, body.password, body.role)
    return RegisterResponse(user_id=account.user_id)


@router.get("/admin", response_model=list[AccountOut])
def get_all_users(
    _admin: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> list[AccountOut]:
    """List all accounts (Admin only, enforced by the gate). Hashes are never included."""
    return list_accounts(db)


@router.post(
    "/admin/create_user",
    response_model=AccountOut,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    body: CreateUserRequest,
    _admin: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> AccountOut:
    return register_account(db, body.username, body.password, body.role)


@router.delete("/admin/delete_user/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    _admin: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> MessageResponse:
    """Delete an account; its files are removed best effort first."""
    remove_account(
        db,
        user_id,
        cascade=lambda uid: run_cascade(db, uid, settings, storage),
    )
    return MessageResponse(message="User deleted successfully")
