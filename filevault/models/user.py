"""ORM model for user accounts (auth and RBAC)."""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func

from filevault.models.base import Base


class User(Base):
    """
    User account for bearer-token authentication and role-based access control.

    user_id is the external identifier carried in tokens and file ownership;
    id is internal and never exposed.
    role: 'Admin' or 'User'
    """

    __tablename__ = "users"
    __table_args__ = (CheckConstraint("role IN ('Admin', 'User')", name="ck_users_role"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), nullable=False, unique=True, index=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="User")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
