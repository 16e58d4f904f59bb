"""Test environment: must run before filevault is imported (settings are cached at import)."""

import os

os.environ["APP_ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-0123456789abcdef0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CASCADE_MODE"] = "local"
