"""User accounts backed by GitHub identities."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trendlens.models.user import User
from trendlens.services.github_oauth import GitHubProfile

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def find_or_create_user(self, profile: GitHubProfile) -> User:
        """
        Look up the account for a GitHub id, creating it on first login

        GitHub logins are reusable after a rename, so a new account whose login
        is already held by another row gets the username "<login>-<github id>".
        """
        external_id = str(profile.id)
        user = self._get_by_external_id(external_id)
        if user is not None:
            return user

        username = profile.login
        if self._username_taken(username):
            username = f"{profile.login}-{external_id}"
            logger.warning(f"Username {profile.login} already taken, using {username}")

        user = User(
            username=username,
            external_id=external_id,
            avatar=profile.avatar_url,
            bio=profile.bio,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent login for the same GitHub account got there first
            self.db.rollback()
            existing = self._get_by_external_id(external_id)
            if existing is None:
                raise
            return existing

        logger.info(f"Created user {user.id} for GitHub account {profile.login}")
        return user

    def _get_by_external_id(self, external_id: str) -> Optional[User]:
        stmt = select(User).where(User.external_id == external_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _username_taken(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username)
        return self.db.execute(stmt).first() is not None
