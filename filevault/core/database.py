"""Database engine and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from filevault.core.config import Settings, settings


def _engine_options(cfg: Settings) -> dict[str, Any]:
    """Per-dialect options that bound how long a single store call may block."""
    url = cfg.DATABASE_URL
    if url.startswith("sqlite"):
        options: dict[str, Any] = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": cfg.DB_CONNECT_TIMEOUT_SEC,
            },
        }
        # In-memory databases exist per connection; share one across the pool.
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_timeout": cfg.DB_CONNECT_TIMEOUT_SEC,
        "connect_args": {
            "connect_timeout": cfg.DB_CONNECT_TIMEOUT_SEC,
            "options": f"-c statement_timeout={cfg.DB_STATEMENT_TIMEOUT_MS}",
        },
    }


def build_engine(cfg: Settings) -> Engine:
    """Create an engine for cfg.DATABASE_URL with bounded connect/statement time."""
    return create_engine(cfg.DATABASE_URL, echo=cfg.DEBUG, **_engine_options(cfg))


engine = build_engine(settings)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
