# models/idea.py

import uuid
from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Float, String, Text
from ideaboard.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Idea(Base):
    __tablename__ = "ideas"

    # Primary key (UUID rendered as text so the same model works on SQLite and PostgreSQL)
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Project the idea card belongs to
    project_id = Column(String(36), nullable=True, index=True)

    # Card title and optional long description
    content = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)

    # Position on the 2D priority matrix
    x = Column(Float, nullable=False, default=0.0)
    y = Column(Float, nullable=False, default=0.0)

    # Priority bucket (low, moderate, high, strategic, innovation)
    priority = Column(String(32), nullable=False, default="moderate")

    is_collapsed = Column(Boolean, nullable=False, default=False)

    # Edit lock: user currently editing the card and when the lock was taken.
    # editing_by set implies editing_at set.
    editing_by = Column(String(36), nullable=True)
    editing_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
