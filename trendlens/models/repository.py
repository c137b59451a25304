"""Repository model for cached trending repositories"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, UniqueConstraint
from datetime import datetime
import enum

from trendlens.config.database import Base


class Platform(str, enum.Enum):
    """Code-hosting platform a repository was fetched from"""
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


class Repository(Base):
    """
    Snapshot of an upstream repository plus its one-time AI analysis

    A row is written the first time (platform, platform_id) is seen and is
    never refreshed afterwards, even when upstream stars/forks move.
    """
    __tablename__ = "repositories"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Upstream identity
    platform = Column(String(20), nullable=False, default=Platform.GITHUB.value)  # VARCHAR, not enum
    platform_id = Column(String(64), nullable=False)  # e.g. GitHub numeric id as text

    # Repository details
    name = Column(String(500), nullable=False)  # e.g., "facebook/react"
    description = Column(Text, nullable=True)
    language = Column(String(100), nullable=True)
    stars = Column(Integer, default=0)
    forks = Column(Integer, default=0)
    url = Column(String(1000), nullable=False)

    platform_data = Column(JSON, nullable=True)  # {"github": {"owner", "repo", "topics", "license"}}
    ai_analysis = Column(JSON, nullable=True)  # see services/analysis_contracts.py

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("platform", "platform_id", name="uk_repositories_platform_id"),
    )

    def __repr__(self):
        return f"<Repository {self.platform}:{self.name} ({self.stars} stars)>"
