"""Tests for the create_user command-line script."""

import io
import unittest
from unittest.mock import patch

from filevault.models import User
from filevault.scripts.create_user import main
from support import make_session_factory


class TestCreateUserScript(unittest.TestCase):
    def setUp(self) -> None:
        self.Session = make_session_factory()
        patcher = patch("filevault.scripts.create_user.SessionLocal", self.Session)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_creates_admin(self) -> None:
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = main(["root", "R00tPassword", "Admin"])
        self.assertEqual(code, 0)
        self.assertIn("userId 1", out.getvalue())
        db = self.Session()
        self.addCleanup(db.close)
        self.assertEqual(db.query(User).one().role, "Admin")

    def test_role_defaults_to_user(self) -> None:
        with patch("sys.stdout", new_callable=io.StringIO):
            self.assertEqual(main(["plain", "Passw0rdX"]), 0)
        db = self.Session()
        self.addCleanup(db.close)
        self.assertEqual(db.query(User).one().role, "User")

    def test_weak_password_exits_non_zero(self) -> None:
        with patch("sys.stderr", new_callable=io.StringIO) as err:
            code = main(["root", "weak"])
        self.assertEqual(code, 1)
        self.assertIn("at least 8 characters", err.getvalue())

    def test_unknown_role_is_rejected_by_parser(self) -> None:
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                main(["root", "R00tPassword", "Root"])


if __name__ == "__main__":
    unittest.main()
