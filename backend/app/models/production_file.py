"""Production file records (footage and edits). Soft-deleted rows never count toward stage gates."""

from __future__ import annotations

import enum

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


class FileType(str, enum.Enum):
    RAW_FOOTAGE = "RAW_FOOTAGE"
    A_ROLL = "A_ROLL"
    B_ROLL = "B_ROLL"
    HOOK = "HOOK"
    BODY = "BODY"
    CTA = "CTA"
    AUDIO_CLIP = "AUDIO_CLIP"
    OTHER = "OTHER"
    EDITED_VIDEO = "EDITED_VIDEO"
    FINAL_VIDEO = "FINAL_VIDEO"


RAW_FILE_TYPES = frozenset(
    {
        FileType.RAW_FOOTAGE,
        FileType.A_ROLL,
        FileType.B_ROLL,
        FileType.HOOK,
        FileType.BODY,
        FileType.CTA,
        FileType.AUDIO_CLIP,
        FileType.OTHER,
    }
)
EDITED_FILE_TYPES = frozenset({FileType.EDITED_VIDEO, FileType.FINAL_VIDEO})


def normalize_file_type(value: str) -> FileType:
    """Accept both `RAW_FOOTAGE` and the older `raw-footage` spelling."""
    cleaned = (value or "").strip().upper().replace("-", "_")
    return FileType(cleaned)


class ProductionFile(Base):
    __tablename__ = "production_files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(
        UUID(as_uuid=True),
        ForeignKey("viral_analyses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    uploaded_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    file_type = Column(Enum(FileType, name="production_file_type"), nullable=False)
    file_name = Column(String(512), nullable=False)
    file_url = Column(String(2048), nullable=False)
    file_id = Column(String(255), nullable=True)
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_production_files_analysis_type_live", "analysis_id", "file_type", "is_deleted"),
    )
