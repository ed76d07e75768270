# models/user_profile.py

from sqlalchemy import Column, DateTime, String
from ideaboard.database import Base
from ideaboard.models.idea import _utcnow


class UserProfile(Base):
    __tablename__ = "user_profiles"

    # Same id as the auth user
    id = Column(String(36), primary_key=True)

    email = Column(String(320), nullable=False)
    full_name = Column(String(255), nullable=True)

    # Role name (user, admin, super_admin)
    role = Column(String(32), nullable=False, default="user")

    avatar_url = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
