"""
Shared fixtures for unit tests.
"""

import pytest

from pullis.models.repository import RepositoryRecord
from pullis.models.subscription import Subscription

from tests.unit.factories import make_repository, make_subscription


@pytest.fixture
def repository() -> RepositoryRecord:
    return make_repository()


@pytest.fixture
def subscription() -> Subscription:
    return make_subscription()


@pytest.fixture
def pull_request_payload() -> dict:
    """GitHub pull_request webhook payload (trimmed)."""
    return {
        "action": "opened",
        "number": 7,
        "pull_request": {
            "number": 7,
            "title": "Add widget",
            "html_url": "https://github.com/octo/widgets/pull/7",
            "body": "Adds the widget.",
            "merged": False,
            "additions": 10,
            "deletions": 2,
            "changed_files": 3,
        },
        "repository": {
            "id": 42,
            "name": "widgets",
            "full_name": "octo/widgets",
            "private": False,
            "owner": {"id": 1, "login": "octo", "type": "Organization"},
        },
        "sender": {"id": 100, "login": "alice"},
    }
