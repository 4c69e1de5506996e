"""
Repository administration REST API endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from pullis.models.repository import RepositoryCreate, RepositoryRecord
from pullis.services.container import ServiceContainer, get_services
from pullis.utils.logging import get_logger

logger = get_logger(__name__)


async def verify_api_key(
    x_api_key: Optional[str] = Header(None),
    services: ServiceContainer = Depends(get_services)
) -> None:
    """
    Verify API key for admin endpoints.

    Args:
        x_api_key: API key from request header
        services: Service container

    Raises:
        HTTPException: If API key is invalid or missing
    """
    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key required")

    expected_key = services.settings.admin_api_key or services.settings.github_webhook_secret

    if not expected_key or x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


router = APIRouter(
    prefix="/api/repositories",
    tags=["repositories"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("", response_model=RepositoryRecord, status_code=201)
async def add_repository(
    repo_create: RepositoryCreate,
    services: ServiceContainer = Depends(get_services)
) -> RepositoryRecord:
    """
    Track a repository without going through a GitHub App installation.

    Raises:
        HTTPException: If the repository is already tracked
    """
    try:
        logger.info(f"Adding repository: {repo_create.full_name}")
        repository = await services.repositories.register(repo_create)
        logger.info(f"Repository added successfully: {repository.id}", extra={"repository_id": repository.id})
        return repository

    except ValueError as e:
        logger.warning(f"Repository already exists: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding repository: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("", response_model=List[RepositoryRecord])
async def list_repositories(services: ServiceContainer = Depends(get_services)) -> List[RepositoryRecord]:
    """List all tracked repositories."""
    try:
        repositories = await services.repositories.list_all()
        logger.info(f"Found {len(repositories)} repositories")
        return repositories

    except Exception as e:
        logger.error(f"Error listing repositories: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{repo_id}")
async def remove_repository(repo_id: str, services: ServiceContainer = Depends(get_services)) -> dict:
    """
    Stop tracking a repository. Its subscriptions are removed with it.

    Raises:
        HTTPException: If repository not found
    """
    try:
        repository = await services.repositories.find_by_id(repo_id)
        if repository is None:
            raise HTTPException(status_code=404, detail=f"Repository {repo_id} not found")

        await services.repositories.delete(repo_id)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing repository: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Repository removed: {repository.full_name}", extra={"repository_id": repo_id})
    return {"status": "success", "message": f"Repository {repository.full_name} removed"}
