# models/__init__.py
# Importing the models registers their tables on Base.metadata.
from ideaboard.database import Base
from ideaboard.models.idea import Idea
from ideaboard.models.user_profile import UserProfile

__all__ = ["Base", "Idea", "UserProfile"]
