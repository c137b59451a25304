"""User model for OAuth-authenticated accounts"""

from sqlalchemy import Column, Integer, String, Text, DateTime
from datetime import datetime

from trendlens.config.database import Base


class User(Base):
    """
    Account created on first successful GitHub login

    Never deleted in-band.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    username = Column(String(255), nullable=False, unique=True)
    external_id = Column(String(64), nullable=False, unique=True, index=True)  # GitHub user id
    avatar = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "avatar": self.avatar,
            "bio": self.bio,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.username}>"
