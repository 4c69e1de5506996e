"""MySQL persistence for users, repositories, subscriptions and user mappings."""

from pullis.db.database import Database
from pullis.db.base import BaseStore
from pullis.db.repositories import RepositoryStore
from pullis.db.subscriptions import SubscriptionStore
from pullis.db.users import UserStore
from pullis.db.user_mappings import UserMappingStore

__all__ = [
    "Database",
    "BaseStore",
    "RepositoryStore",
    "SubscriptionStore",
    "UserStore",
    "UserMappingStore",
]
