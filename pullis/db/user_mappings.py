"""Store for GitHub username to Slack user mappings."""

from typing import Optional

from pullis.db.base import BaseStore
from pullis.models.user import UserMapping


class UserMappingStore(BaseStore[UserMapping]):
    """One mapping per GitHub username; the latest write wins."""

    table_name = "user_mappings"
    model = UserMapping

    async def find_by_github_username(self, github_username: str) -> Optional[UserMapping]:
        return await self.find_one_by(github_username=github_username)

    async def upsert_by_github_username(
        self,
        github_username: str,
        slack_user_id: str,
        slack_username: str
    ) -> UserMapping:
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
