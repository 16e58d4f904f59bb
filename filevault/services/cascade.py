"""Best-effort removal of a deleted account's files.

The account store and the file store are independent, so this is a
compensating action rather than a transaction: if a step fails the account is
still deleted and the remaining bytes or records are left orphaned. Nothing in
this module raises to its caller.

Deployment shapes (``CASCADE_MODE``):

- ``local``: the files table is in this process's database; delete directly.
- ``remote``: notify the files service, which runs the local cascade itself.
- ``off``: no file store is registered here; nothing to do.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filevault.core.security import ROLE_ADMIN, issue_token
from filevault.models import StoredFile
from filevault.services.storage import FileStorage

if TYPE_CHECKING:
    from filevault.core.config import Settings

logger = logging.getLogger(__name__)

# Principal id carried by the token the users service presents to the files service.
SERVICE_PRINCIPAL_ID = "users-service"
SERVICE_TOKEN_TTL = timedelta(minutes=1)


@dataclass
class CascadeResult:
    """Outcome of one cascade run; failures are counted, never raised."""

    files_found: int = 0
    storage_failures: int = 0
    records_deleted: int = 0
    records_failed: bool = False

    @property
    def complete(self) -> bool:
        return not self.records_failed and self.storage_failures == 0


def cascade_delete_files(db: Session, user_id: str, storage: FileStorage) -> CascadeResult:
    """
    Delete every stored byte stream owned by user_id, then bulk-delete the records.

    Each byte deletion is attempted once; failures are logged and counted. The
    records are removed with a single bulk delete regardless.
    """
    result = CascadeResult()
    try:
        files = db.query(StoredFile).filter(StoredFile.user_id == user_id).all()
    except SQLAlchemyError:
        logger.exception("Cascade: could not list files for userId=%s", user_id)
        db.rollback()
        result.records_failed = True
        return result

    result.files_found = len(files)
    for record in files:
        try:
            storage.delete(record.file_path)
        except OSError as e:
            result.storage_failures += 1
            logger.warning(
                "Cascade: could not delete bytes of file id=%s for userId=%s: %s",
                record.id,
                user_id,
                e,
            )

    try:
        result.records_deleted = (
            db.query(StoredFile)
            .filter(StoredFile.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        logger.exception("Cascade: could not delete file records for userId=%s", user_id)
        db.rollback()
        result.records_failed = True
        return result

    logger.info(
        "Cascade for userId=%s: files=%s records_deleted=%s storage_failures=%s",
        user_id,
        result.files_found,
        result.records_deleted,
        result.storage_failures,
    )
    return result


def notify_files_service(
    user_id: str,
    settings: "Settings",
    client: httpx.Client | None = None,
) -> bool:
    """
    Ask the files service to drop user_id's files. Returns True on a 2xx answer.

    Authenticates with a short-lived Admin token signed with the shared secret.
    """
    token = issue_token(
        {"userId": SERVICE_PRINCIPAL_ID, "role": ROLE_ADMIN},
        settings.JWT_SECRET.get_secret_value(),
        SERVICE_TOKEN_TTL,
        algorithm=settings.JWT_ALGORITHM,
    )
    url = f"{settings.FILES_SERVICE_URL}/users/{user_id}"
    headers = {"Authorization": f"Bearer {token}"}
    try:
        if client is None:
            with httpx.Client(timeout=settings.UPSTREAM_TIMEOUT_SEC) as own_client:
                response = own_client.delete(url, headers=headers)
        else:
            response = client.delete(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("Cascade: files service unreachable for userId=%s: %s", user_id, e)
        return False

    if not response.is_success:
        logger.warning(
            "Cascade: files service answered %s for userId=%s",
            response.status_code,
            user_id,
        )
        return False
    return True


def run_cascade(
    db: Session,
    user_id: str,
    settings: "Settings",
    storage: FileStorage,
) -> None:
    """Dispatch the cascade for user_id according to CASCADE_MODE."""
    if settings.CASCADE_MODE == "off":
        logger.debug("Cascade: no file store registered; skipping userId=%s", user_id)
        return
    if settings.CASCADE_MODE == "remote":
        notify_files_service(user_id, settings)
        return
    cascade_delete_files(db, user_id, storage)
