"""Store for internal users."""

import logging
from typing import Optional

from pullis.db.base import BaseStore
from pullis.models.user import User


logger = logging.getLogger(__name__)


class UserStore(BaseStore[User]):
    """Users, identified by GitHub id when known and by Slack id once mapped."""

    table_name = "users"
    model = User

    async def find_by_github_id(self, github_id: int) -> Optional[User]:
        return await self.find_one_by(github_id=github_id)

    async def find_by_github_username(self, github_username: str) -> Optional[User]:
        return await self.find_one_by(github_username=github_username)

    async def find_by_slack_id(self, slack_user_id: str) -> Optional[User]:
        return await self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE slack_user_id = %s ORDER BY updated_at DESC LIMIT 1",
            [slack_user_id]
        )

    async def upsert_by_github_id(
        self,
        github_id: int,
        github_username: str,
        email: Optional[str] = None
    ) -> User:
        """
        Create or refresh a user seen on GitHub.

        A user created earlier by /map-user (no GitHub id yet) is adopted by
        username instead of duplicated.
        """
        existing = await self.find_by_github_id(github_id)
        if existing is None:
            existing = await self.find_by_github_username(github_username)

        if existing:
            changes = {"github_id": github_id, "github_username": github_username}
            if email:
                changes["email"] = email
            updated = await self.update(existing.id, changes)
            return updated or existing

        return await self.create({
            "github_id": github_id,
            "github_username": github_username,
            "email": email,
        })

    async def link_slack_identity(
        self,
        github_username: str,
        slack_user_id: str,
        slack_username: str
    ) -> User:
        """
        Attach a Slack identity to the user with this GitHub username, creating the user if needed.

        A Slack user maps to at most one GitHub user, so the identity is first
        detached from any other user holding it.
        """
        released = await self._execute(
            f"UPDATE {self.table_name} SET slack_user_id = NULL, slack_username = NULL "
            f"WHERE slack_user_id = %s AND github_username <> %s",
            [slack_user_id, github_username]
        )
        if released:
            logger.info(f"Detached Slack user {slack_user_id} from {released} previous user(s)")

        existing = await self.find_by_github_username(github_username)

        if existing:
            updated = await self.update(existing.id, {
                "slack_user_id": slack_user_id,
                "slack_username": slack_username,
            })
            return updated or existing

        return await self.create({
            "github_username": github_username,
            "slack_user_id": slack_user_id,
            "slack_username": slack_username,
        })
