"""Shared response schemas."""

from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Plain acknowledgement body, e.g. {"message": "User deleted successfully"}."""

    message: str
