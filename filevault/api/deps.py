"""Dependencies shared by the service routers."""

from fastapi import Request

from filevault.core.config import Settings
from filevault.services.storage import FileStorage


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def get_storage(request: Request) -> FileStorage:
    return request.app.state.storage
