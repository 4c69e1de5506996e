"""Store for tracked GitHub repositories."""

import logging
from typing import List, Optional

from pullis.db.base import BaseStore
from pullis.models.repository import OwnerType, RepositoryCreate, RepositoryRecord


logger = logging.getLogger(__name__)


class RepositoryStore(BaseStore[RepositoryRecord]):
    """Repository records keyed by their GitHub id."""

    table_name = "repositories"
    model = RepositoryRecord

    async def find_by_github_id(self, github_id: int) -> Optional[RepositoryRecord]:
        return await self.find_one_by(github_id=github_id)

    async def find_by_full_name(self, full_name: str) -> Optional[RepositoryRecord]:
        return await self.find_one_by(full_name=full_name)

    async def find_by_owner(self, owner_id: str, owner_type: OwnerType) -> List[RepositoryRecord]:
        return await self.find_all_by(owner_id=owner_id, owner_type=owner_type)

    async def register(self, repo_create: RepositoryCreate) -> RepositoryRecord:
        """
        Start tracking a repository.

        Raises:
            ValueError: If a repository with the same GitHub id is already tracked
        """
        if await self.find_by_github_id(repo_create.github_id):
            raise ValueError(f"Repository already tracked with GitHub id: {repo_create.github_id}")

        repository = await self.create(repo_create.model_dump())
        logger.info(f"Registered repository {repository.full_name} ({repository.github_id})")
        return repository

    async def upsert_by_github_id(self, repo_create: RepositoryCreate) -> RepositoryRecord:
        """
        Create the repository, or refresh its name and visibility if already tracked.

        Ownership is fixed at creation and never changed here.
        """
        existing = await self.find_by_github_id(repo_create.github_id)

        if existing:
            updated = await self.update(existing.id, {
                "name": repo_create.name,
                "full_name": repo_create.full_name,
                "private": repo_create.private,
            })
            return updated or existing

        return await self.create(repo_create.model_dump())
