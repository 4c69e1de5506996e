"""Repository data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class OwnerType(str, Enum):
    """Kind of account that owns a repository."""

    USER = "user"
    ORGANIZATION = "organization"


class RepositoryRecord(BaseModel):
    """Tracked GitHub repository."""

    id: str
    github_id: int
    name: str
    full_name: str
    private: bool = False
    owner_id: str
    owner_type: OwnerType
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RepositoryCreate(BaseModel):
    """Repository registration request model."""

    github_id: int = Field(gt=0)
    name: str = Field(min_length=1)
    full_name: str = Field(min_length=3, pattern=r"^[^/\s]+/[^/\s]+$")
    private: bool = False
    owner_id: str
    owner_type: OwnerType = OwnerType.USER
