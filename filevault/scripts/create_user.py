"""
Create an account (e.g. the first Admin). Run from project root:
  python -m filevault.scripts.create_user USERNAME PASSWORD [role]
Example:
  python -m filevault.scripts.create_user admin 'Str0ngPassword' Admin
"""
import argparse
import sys

from filevault.core.database import SessionLocal
from filevault.core.errors import ValidationFailed
from filevault.core.security import VALID_ROLES
from filevault.services.accounts import register_account


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a FileVault account.")
    parser.add_argument("username", help="Username (1-50 chars, trimmed)")
    parser.add_argument("password", help="Password (8+ chars, upper, lower and digit)")
    parser.add_argument("role", nargs="?", default="User", choices=list(VALID_ROLES))
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        account = register_account(db, args.username, args.password, args.role)
    except ValidationFailed as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{account.username}' (userId {account.user_id}) with role '{account.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
