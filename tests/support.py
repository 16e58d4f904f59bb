"""Helpers shared by the API tests: in-memory database, settings and tokens."""

import tempfile
import unittest
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from filevault.core.config import Settings
from filevault.core.database import get_db
from filevault.core.security import create_access_token
from filevault.models import Base

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
OTHER_SECRET = "another-secret-0123456789abcdef0123456789ab"


def make_settings(**overrides: object) -> Settings:
    """Settings with a known secret and cheap bcrypt cost; overrides win."""
    values: dict[str, object] = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
        "CASCADE_MODE": "local",
    }
    values.update(overrides)
    return Settings(**values)


def make_session_factory() -> sessionmaker:
    """Fresh in-memory SQLite database with every table created."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def bind_database(app: FastAPI, session_factory: sessionmaker) -> None:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db


def bearer(user_id: str, role: str, settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role, settings)}"}


def expired_bearer(user_id: str, role: str) -> dict[str, str]:
    token = jwt.encode(
        {"userId": user_id, "role": role, "exp": datetime.now(UTC) - timedelta(minutes=5)},
        TEST_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


def foreign_bearer(user_id: str, role: str) -> dict[str, str]:
    """A well-formed, unexpired token signed with a different secret."""
    token = jwt.encode(
        {"userId": user_id, "role": role, "exp": datetime.now(UTC) + timedelta(minutes=5)},
        OTHER_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


class ServiceTestCase(unittest.TestCase):
    """Base for API tests: fresh database, upload directory and settings per test."""

    settings_overrides: dict[str, object] = {}

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.upload_dir = tmp.name
        self.settings = make_settings(UPLOAD_DIR=self.upload_dir, **self.settings_overrides)
        self.Session = make_session_factory()

    def session(self) -> Session:
        db = self.Session()
        self.addCleanup(db.close)
        return db

    def client_for(self, app: FastAPI) -> TestClient:
        bind_database(app, self.Session)
        return TestClient(app)
