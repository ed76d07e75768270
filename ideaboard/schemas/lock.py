# ideaboard/schemas/lock.py

from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class LockBadge(BaseModel):
    """What an idea card shows for its edit lock, from one user's point of view."""
    label: Optional[Literal["Active", "Editing"]] = Field(
        None, description="'Active' when someone else edits the card, 'Editing' for your own lock."
    )
    disabled: bool = Field(False, description="Edit controls are disabled for this user.")


class LockRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="User starting the edit.")


class LockInfo(BaseModel):
    idea_id: str
    user_id: str
    acquired_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    operation: Literal["editing"] = "editing"


class LockResult(BaseModel):
    acquired: bool
    badge: LockBadge


class UnlockResult(BaseModel):
    released: bool
