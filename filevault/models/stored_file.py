"""ORM model for uploaded file metadata."""

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Integer, String, func

from filevault.models.base import Base


class StoredFile(Base):
    """
    Metadata for one uploaded file; the bytes live at file_path.

    user_id is the owner's external userId. It is a lookup key, not a foreign
    key, so this table can live in the files service's own database.
    """

    __tablename__ = "files"
    __table_args__ = (CheckConstraint("file_size >= 0", name="ck_files_file_size"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), nullable=False, index=True)
    file_name = Column(String(512), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(BigInteger().with_variant(Integer, "sqlite"), nullable=False)
    file_type = Column(String(255), nullable=False)
    uploaded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
