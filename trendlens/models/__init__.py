"""Database models"""

from trendlens.models.bookmark import Bookmark
from trendlens.models.repository import Platform, Repository
from trendlens.models.user import User

__all__ = [
    "Bookmark",
    "Platform",
    "Repository",
    "User",
]
