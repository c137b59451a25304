"""Bookmark join model between users and repositories"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from trendlens.config.database import Base


class Bookmark(Base):
    """A user's saved repository. One row per (user, repository)."""

    __tablename__ = "bookmarks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    repository_id = Column(Integer, ForeignKey("repositories.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    user = relationship("User", backref="bookmarks")
    repository = relationship("Repository", backref="bookmarks")

    __table_args__ = (
        UniqueConstraint("user_id", "repository_id", name="uk_bookmarks_user_repository"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "repositoryId": self.repository_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Bookmark user={self.user_id} repository={self.repository_id}>"
