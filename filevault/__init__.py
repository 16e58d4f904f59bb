"""FileVault: users and files services behind a gateway, sharing bearer-token access control."""

__version__ = "0.1.0"
