"""API tests for the files service: upload ownership, ownership rule, delete and cascade receiver."""

import os
import unittest
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from filevault.core.database import get_db
from filevault.main import create_files_app
from filevault.models import StoredFile
from filevault.services.storage import FileStorage
from support import ServiceTestCase, bearer, foreign_bearer

ALICE = "1"
BOB = "2"
ADMIN = "9"


class FilesApiTestCase(ServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.app = create_files_app(self.settings)
        self.client = self.client_for(self.app)
        self.alice = bearer(ALICE, "User", self.settings)
        self.bob = bearer(BOB, "User", self.settings)
        self.admin = bearer(ADMIN, "Admin", self.settings)

    def upload(self, headers: dict[str, str], content: bytes = b"hello world", **data: str) -> dict:
        response = self.client.post(
            "/",
            files={"file": ("notes.txt", content, "text/plain")},
            data=data,
            headers=headers,
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def stored_files(self) -> list[str]:
        return sorted(os.listdir(self.upload_dir)) if os.path.isdir(self.upload_dir) else []


class TestUpload(FilesApiTestCase):
    def test_owner_comes_from_token_not_body(self) -> None:
        body = self.upload(self.alice, UserId="999", userId="999")
        self.assertEqual(body["userId"], ALICE)
        row = self.session().get(StoredFile, body["fileId"])
        self.assertEqual(row.user_id, ALICE)

    def test_metadata_matches_bytes_on_disk(self) -> None:
        body = self.upload(self.alice, content=b"0123456789")
        self.assertEqual(body["fileName"], "notes.txt")
        self.assertEqual(body["fileSize"], 10)
        self.assertEqual(body["fileType"], "text/plain")
        with open(body["filePath"], "rb") as f:
            self.assertEqual(f.read(), b"0123456789")

    def test_no_file_is_400(self) -> None:
        response = self.client.post("/", data={"name": "x"}, headers=self.alice)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"message": "No file uploaded"})

    def test_oversized_upload_leaves_nothing_behind(self) -> None:
        self.app.state.settings = self.settings.model_copy(update={"MAX_UPLOAD_BYTES": 4})
        response = self.client.post(
            "/",
            files={"file": ("big.bin", b"too many bytes", "application/octet-stream")},
            headers=self.alice,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.stored_files(), [])
        self.assertEqual(self.session().query(StoredFile).count(), 0)

    def test_upload_requires_credential(self) -> None:
        response = self.client.post("/", files={"file": ("a.txt", b"a", "text/plain")})
        self.assertEqual(response.status_code, 401)
        response = self.client.post(
            "/", files={"file": ("a.txt", b"a", "text/plain")}, headers=foreign_bearer(ALICE, "User")
        )
        self.assertEqual(response.status_code, 403)

    def _break_store(self) -> None:
        broken = MagicMock()
        broken.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        self.app.dependency_overrides[get_db] = lambda: broken

    def test_store_failure_removes_written_bytes(self) -> None:
        self._break_store()
        with self.assertLogs("filevault.core.errors", level="ERROR"):
            response = self.client.post(
                "/", files={"file": ("a.txt", b"abc", "text/plain")}, headers=self.alice
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"message": "Internal server error"})
        self.assertEqual(self.stored_files(), [])

    def test_store_failure_with_undeletable_bytes_is_still_json_500(self) -> None:
        self._break_store()
        storage = MagicMock(spec=FileStorage)
        storage.save.return_value = ("/data/orphan.txt", 3)
        storage.delete.side_effect = PermissionError("read-only filesystem")
        self.app.state.storage = storage
        with self.assertLogs("filevault.api.files", level="WARNING") as logs:
            response = self.client.post(
                "/", files={"file": ("a.txt", b"abc", "text/plain")}, headers=self.alice
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"message": "Internal server error"})
        storage.delete.assert_called_once_with("/data/orphan.txt")
        self.assertIn("/data/orphan.txt", logs.output[0])


class TestListing(FilesApiTestCase):
    def test_lists_only_own_files_newest_first(self) -> None:
        first = self.upload(self.alice)
        second = self.upload(self.alice)
        self.upload(self.bob)
        response = self.client.get("/", headers=self.alice)
        self.assertEqual(response.status_code, 200)
        self.assertEqual([f["fileId"] for f in response.json()], [second["fileId"], first["fileId"]])


class TestOwnershipRule(FilesApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.file = self.upload(self.alice, content=b"secret")
        self.file_url = f"/{self.file['fileId']}"

    def test_owner_downloads_bytes(self) -> None:
        response = self.client.get(f"{self.file_url}/download", headers=self.alice)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"secret")
        self.assertIn("notes.txt", response.headers["content-disposition"])

    def test_other_user_is_forbidden(self) -> None:
        download = self.client.get(f"{self.file_url}/download", headers=self.bob)
        delete = self.client.delete(self.file_url, headers=self.bob)
        self.assertEqual(download.status_code, 403)
        self.assertEqual(delete.status_code, 403)
        self.assertEqual(download.json(), {"message": "Forbidden"})
        self.assertEqual(self.session().query(StoredFile).count(), 1)

    def test_admin_acts_on_any_file(self) -> None:
        download = self.client.get(f"{self.file_url}/download", headers=self.admin)
        self.assertEqual(download.status_code, 200)
        delete = self.client.delete(self.file_url, headers=self.admin)
        self.assertEqual(delete.status_code, 200)
        self.assertEqual(delete.json(), {"message": "File deleted successfully"})

    def test_delete_twice_and_bytes_removed(self) -> None:
        first = self.client.delete(self.file_url, headers=self.alice)
        second = self.client.delete(self.file_url, headers=self.alice)
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 404)
        self.assertEqual(second.json(), {"message": "File not found"})
        self.assertFalse(os.path.exists(self.file["filePath"]))

    def test_missing_file_is_404_even_for_non_owner(self) -> None:
        self.assertEqual(self.client.get("/4242/download", headers=self.bob).status_code, 404)
        self.assertEqual(self.client.delete("/4242", headers=self.bob).status_code, 404)

    def test_missing_bytes_is_404(self) -> None:
        os.remove(self.file["filePath"])
        response = self.client.get(f"{self.file_url}/download", headers=self.alice)
        self.assertEqual(response.status_code, 404)


class TestCascadeReceiver(FilesApiTestCase):
    def test_admin_removes_all_files_of_account(self) -> None:
        a = self.upload(self.alice)
        b = self.upload(self.alice)
        kept = self.upload(self.bob)
        response = self.client.delete(f"/users/{ALICE}", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["filesDeleted"], 2)
        self.assertEqual(response.json()["storageFailures"], 0)
        self.assertFalse(os.path.exists(a["filePath"]))
        self.assertFalse(os.path.exists(b["filePath"]))
        self.assertTrue(os.path.exists(kept["filePath"]))

    def test_user_role_cannot_trigger_cascade(self) -> None:
        self.upload(self.alice)
        response = self.client.delete(f"/users/{ALICE}", headers=self.alice)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.session().query(StoredFile).count(), 1)


if __name__ == "__main__":
    unittest.main()
