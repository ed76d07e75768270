# ideaboard/schemas/profile.py

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class UserProfileRead(BaseModel):
    """
    Profile as returned by the remote profile endpoint and cached by ProfileService.
    Unknown keys are kept so newer API fields pass through untouched.
    """
    id: str
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    # "user", "admin" or "super_admin" today; kept open so new roles do not break reads
    role: str = "user"
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"extra": "allow"}


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    full_name: Optional[str] = Field(None, max_length=255, description="Display name.")
    avatar_url: Optional[str] = Field(None, max_length=1024, description="Avatar image URL.")

    model_config = {"extra": "forbid"}
