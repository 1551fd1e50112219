"""
VCA Production Workflow - Profile Model
=======================================
Local team accounts. Credentials live at the identity provider; this row
carries the role used for authorization and as the token subject.
"""

import enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    CREATOR = "CREATOR"
    SCRIPT_WRITER = "SCRIPT_WRITER"
    VIDEOGRAPHER = "VIDEOGRAPHER"
    EDITOR = "EDITOR"
    POSTING_MANAGER = "POSTING_MANAGER"


ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.CREATOR})


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.SCRIPT_WRITER, index=True)
    is_trusted_writer = Column(Boolean, nullable=False, default=False)
    avatar_url = Column(String(1024), nullable=True)
    # bcrypt hash of the 4-digit sign-in PIN; null until the user sets one
    pin_hash = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self):
        return f"<Profile {self.email} ({self.role})>"
