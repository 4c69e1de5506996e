"""
Installation bookkeeping.

Keeps users and tracked repositories in sync with GitHub App installation
and repository events. Records are created and refreshed here but never
deleted: uninstalling only stops events from arriving.
"""

from typing import Any, Dict, List

from pullis.db.repositories import RepositoryStore
from pullis.db.users import UserStore
from pullis.models.repository import RepositoryRecord
from pullis.services.github_events import MalformedEventError, parse_repository
from pullis.utils.logging import get_logger

logger = get_logger(__name__)

TRACKING_INSTALLATION_ACTIONS = {"created", "new_permissions_accepted", "unsuspend"}
REPOSITORY_CHANGE_ACTIONS = {"renamed", "privatized", "publicized", "edited"}


class InstallationService:
    """Applies installation, installation_repositories and repository events."""

    def __init__(self, users: UserStore, repositories: RepositoryStore):
        self.users = users
        self.repositories = repositories

    async def handle_event(self, event_type: str, payload: Dict[str, Any]) -> List[RepositoryRecord]:
        """
        Dispatch a bookkeeping event by its X-GitHub-Event name.

        Returns:
            Repository records created or updated by the event
        """
        if event_type == "installation":
            return await self.handle_installation(payload)
        if event_type == "installation_repositories":
            return await self.handle_installation_repositories(payload)
        if event_type == "repository":
            return await self.handle_repository(payload)

        logger.debug(f"No bookkeeping for event type {event_type}")
        return []

    async def handle_installation(self, payload: Dict[str, Any]) -> List[RepositoryRecord]:
        action = payload.get("action")
        installation = payload.get("installation") or {}
        repositories = payload.get("repositories") or []

        logger.info(
            f"GitHub App {action} event",
            extra={
                "action": action,
                "installation_id": installation.get("id"),
                "sender": (payload.get("sender") or {}).get("login"),
                "repository_count": len(repositories),
            }
        )

        if action not in TRACKING_INSTALLATION_ACTIONS:
            return []

        await self._upsert_sender(payload)
        return await self._upsert_repositories(repositories, installation.get("account") or {})

    async def handle_installation_repositories(self, payload: Dict[str, Any]) -> List[RepositoryRecord]:
        action = payload.get("action")
        installation = payload.get("installation") or {}

        if action == "added":
            return await self._upsert_repositories(
                payload.get("repositories_added") or [],
                installation.get("account") or {},
            )

        removed = [repo.get("full_name") for repo in payload.get("repositories_removed") or []]
        logger.info(f"Repositories removed from installation: {removed}")
        return []

    async def handle_repository(self, payload: Dict[str, Any]) -> List[RepositoryRecord]:
        """Refresh name and visibility of a tracked repository."""
        action = payload.get("action")
        repository = payload.get("repository") or {}

        if action not in REPOSITORY_CHANGE_ACTIONS:
            return []

        existing = await self.repositories.find_by_github_id(repository.get("id") or 0)
        if existing is None:
            logger.debug(f"Repository {repository.get('full_name')} is not tracked, skipping {action}")
            return []

        repo_create = parse_repository(repository, repository.get("owner") or {})
        updated = await self.repositories.update(existing.id, {
            "name": repo_create.name,
            "full_name": repo_create.full_name,
            "private": repo_create.private,
        })

        logger.info(f"Repository {existing.full_name} {action}, now {repo_create.full_name}")
        return [updated] if updated else []

    async def _upsert_sender(self, payload: Dict[str, Any]) -> None:
        sender = payload.get("sender") or {}
        if not sender.get("id") or not sender.get("login"):
            return

        await self.users.upsert_by_github_id(
            github_id=sender["id"],
            github_username=sender["login"],
            email=sender.get("email"),
        )

    async def _upsert_repositories(
        self,
        repositories: List[Dict[str, Any]],
        account: Dict[str, Any]
    ) -> List[RepositoryRecord]:
        records = []

        for repository in repositories:
            try:
                repo_create = parse_repository(repository, account)
            except MalformedEventError as e:
                logger.warning(f"Skipping repository: {e}")
                continue

            records.append(await self.repositories.upsert_by_github_id(repo_create))

        if records:
            logger.info(f"Tracking {len(records)} repositories: {[r.full_name for r in records]}")
        return records
