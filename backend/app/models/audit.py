"""
VCA Production Workflow - Action Audit Log
==========================================
Records who moved which analysis where, with request correlation.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, Text

from app.core.database import Base


class ActionAuditLog(Base):
    __tablename__ = "action_audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(80), nullable=False, index=True)
    entity_type = Column(String(80), nullable=False, index=True)
    entity_id = Column(String(120), nullable=True, index=True)
    from_state = Column(String(64), nullable=True)
    to_state = Column(String(64), nullable=True)
    reason = Column(Text, nullable=True)
    details_json = Column(JSON, nullable=True, default=dict)
    actor_user_id = Column(String(64), nullable=True, index=True)
    actor_email = Column(String(255), nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)
    request_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("ix_action_audit_entity_created", "entity_type", "entity_id", "created_at"),
    )
