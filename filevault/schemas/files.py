"""Request/response schemas for the files service."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FileOut(BaseModel):
    """Stored file metadata as returned to clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    file_id: int = Field(validation_alias=AliasChoices("id", "fileId", "file_id"))
    user_id: str
    file_name: str
    file_path: str
    file_size: int = Field(ge=0)
    file_type: str
    uploaded_at: datetime | None = None


class CascadeResponse(BaseModel):
    """Result of removing every file owned by a deleted account."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    files_deleted: int = Field(ge=0)
    storage_failures: int = Field(ge=0)
