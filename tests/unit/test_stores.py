"""
Unit tests for the MySQL-backed stores.

The Database is mocked down to the aiomysql cursor, so these tests check the
SQL issued and the mapping of rows to models.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pullis.db.repositories import RepositoryStore
from pullis.db.subscriptions import SubscriptionStore
from pullis.db.user_mappings import UserMappingStore
from pullis.db.users import UserStore
from pullis.models.repository import OwnerType, RepositoryCreate
from pullis.models.subscription import SubscriptionCreate
from pullis.models.user import User, UserMapping

from tests.unit.factories import make_repository, make_subscription


@pytest.fixture
def cursor():
    cursor = MagicMock()
    cursor.__aenter__ = AsyncMock(return_value=cursor)
    cursor.__aexit__ = AsyncMock(return_value=False)
    cursor.execute = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def database(cursor):
    conn = MagicMock()
    conn.cursor = MagicMock(return_value=cursor)
    conn.commit = AsyncMock()

    database = MagicMock()
    database.connection.return_value.__aenter__ = AsyncMock(return_value=conn)
    database.connection.return_value.__aexit__ = AsyncMock(return_value=False)
    database.conn = conn
    return database


def subscription_row(**overrides):
    row = {
        "id": "sub-1",
        "user_id": "user-1",
        "repository_id": "repo-1",
        "slack_channel_id": "C1",
        "events": json.dumps(["pull_request.opened", "pull_request.merged"]),
        "is_active": 1,
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


class TestBaseStore:

    @pytest.mark.asyncio
    async def test_find_all_by_decodes_json_columns(self, database, cursor):
        cursor.fetchall.return_value = [subscription_row(), subscription_row(id="sub-2", is_active=0)]

        subscriptions = await SubscriptionStore(database).find_by_repository_id("repo-1")

        query, params = cursor.execute.await_args.args
        assert query == "SELECT * FROM subscriptions WHERE repository_id = %s ORDER BY created_at"
        assert params == ["repo-1"]
        assert subscriptions[0].events == ["pull_request.opened", "pull_request.merged"]
        assert subscriptions[0].is_active is True
        assert subscriptions[1].is_active is False

    @pytest.mark.asyncio
    async def test_find_one_by_multiple_columns(self, database, cursor):
        cursor.fetchone.return_value = subscription_row()

        subscription = await SubscriptionStore(database).find_for_user_repository_and_channel(
            "user-1", "repo-1", "C1"
        )

        query, params = cursor.execute.await_args.args
        assert "WHERE user_id = %s AND repository_id = %s AND slack_channel_id = %s LIMIT 1" in query
        assert params == ["user-1", "repo-1", "C1"]
        assert subscription.id == "sub-1"

    @pytest.mark.asyncio
    async def test_find_returns_none_without_row(self, database):
        assert await UserStore(database).find_by_slack_id("U404") is None

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, database, cursor):
        with pytest.raises(ValueError):
            await UserStore(database).find_one_by(password="x")

        cursor.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_enum_values_are_stored_as_strings(self, database, cursor):
        await RepositoryStore(database).find_by_owner("1", OwnerType.ORGANIZATION)

        _, params = cursor.execute.await_args.args
        assert params == ["1", "organization"]

    @pytest.mark.asyncio
    async def test_create_inserts_and_reads_back(self, database, cursor):
        cursor.fetchone.return_value = subscription_row(events='["pull_request.opened"]')

        subscription = await SubscriptionStore(database).create(SubscriptionCreate(
            user_id="user-1",
            repository_id="repo-1",
            slack_channel_id="C1",
            events=["pull_request.opened"],
        ).model_dump())

        insert_query, insert_params = cursor.execute.await_args_list[0].args
        assert insert_query.startswith(
            "INSERT INTO subscriptions (id, user_id, repository_id, slack_channel_id, events, is_active)"
        )
        assert insert_params[1:] == ["user-1", "repo-1", "C1", '["pull_request.opened"]', True]
        assert len(insert_params[0]) == 36
        assert subscription.events == ["pull_request.opened"]
        database.conn.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_missing_row_returns_none(self, database, cursor):
        result = await SubscriptionStore(database).toggle_subscription("sub-404", False)

        update_query, update_params = cursor.execute.await_args_list[0].args
        assert update_query == "UPDATE subscriptions SET is_active = %s WHERE id = %s"
        assert update_params == [False, "sub-404"]
        assert result is None

    @pytest.mark.asyncio
    async def test_delete_returns_row_count(self, database, cursor):
        cursor.rowcount = 1

        assert await SubscriptionStore(database).delete("sub-1") == 1
        database.conn.commit.assert_awaited_once()


class TestRepositoryStore:

    @pytest.mark.asyncio
    async def test_register_rejects_tracked_repository(self, database):
        store = RepositoryStore(database)
        repo_create = RepositoryCreate(github_id=42, name="widgets", full_name="octo/widgets", owner_id="1")

        with patch.object(store, "find_by_github_id", AsyncMock(return_value=make_repository())):
            with pytest.raises(ValueError):
                await store.register(repo_create)

    @pytest.mark.asyncio
    async def test_upsert_keeps_owner(self, database):
        store = RepositoryStore(database)
        repo_create = RepositoryCreate(
            github_id=42, name="widgets-v2", full_name="octo/widgets-v2", owner_id="999", private=True
        )

        with patch.object(store, "find_by_github_id", AsyncMock(return_value=make_repository())), \
                patch.object(store, "update", AsyncMock(return_value=make_repository(full_name="octo/widgets-v2"))) as update, \
                patch.object(store, "create", AsyncMock()) as create:
            result = await store.upsert_by_github_id(repo_create)

        update.assert_awaited_once_with("repo-1", {
            "name": "widgets-v2",
            "full_name": "octo/widgets-v2",
            "private": True,
        })
        create.assert_not_called()
        assert result.full_name == "octo/widgets-v2"


class TestSubscriptionStore:

    @pytest.mark.asyncio
    async def test_upsert_replaces_events_of_existing(self, database):
        store = SubscriptionStore(database)
        existing = make_subscription(events=["pull_request.opened"], is_active=False)

        with patch.object(store, "find_for_user_repository_and_channel", AsyncMock(return_value=existing)), \
                patch.object(store, "update", AsyncMock(return_value=existing)) as update:
            await store.upsert(SubscriptionCreate(
                user_id="user-1",
                repository_id="repo-1",
                slack_channel_id="C1",
                events=["pull_request.merged"],
            ))

        update.assert_awaited_once_with("sub-1", {"events": ["pull_request.merged"], "is_active": True})


class TestUserStore:

    @pytest.mark.asyncio
    async def test_upsert_adopts_user_created_by_map_user(self, database):
        store = UserStore(database)
        mapped = User(id="user-1", github_username="alice", slack_user_id="U1")

        with patch.object(store, "find_by_github_id", AsyncMock(return_value=None)), \
                patch.object(store, "find_by_github_username", AsyncMock(return_value=mapped)), \
                patch.object(store, "update", AsyncMock(return_value=mapped)) as update, \
                patch.object(store, "create", AsyncMock()) as create:
            await store.upsert_by_github_id(github_id=100, github_username="alice")

        update.assert_awaited_once_with("user-1", {"github_id": 100, "github_username": "alice"})
        create.assert_not_called()

    @pytest.mark.asyncio
    async def test_link_slack_identity_creates_missing_user(self, database):
        store = UserStore(database)

        with patch.object(store, "find_by_github_username", AsyncMock(return_value=None)), \
                patch.object(store, "create", AsyncMock()) as create:
            await store.link_slack_identity("bob", "U2", "bob.slack")

        create.assert_awaited_once_with({
            "github_username": "bob",
            "slack_user_id": "U2",
            "slack_username": "bob.slack",
        })

    @pytest.mark.asyncio
    async def test_remapped_slack_user_is_detached_from_previous_user(self, database, cursor):
        store = UserStore(database)
        bob = User(id="user-2", github_username="bob", slack_user_id="U1")
        cursor.rowcount = 1

        with patch.object(store, "find_by_github_username", AsyncMock(return_value=bob)), \
                patch.object(store, "update", AsyncMock(return_value=bob)) as update:
            await store.link_slack_identity("bob", "U1", "bob.slack")

        query, params = cursor.execute.await_args.args
        assert query.startswith("UPDATE users SET slack_user_id = NULL, slack_username = NULL")
        assert "WHERE slack_user_id = %s AND github_username <> %s" in query
        assert params == ["U1", "bob"]
        update.assert_awaited_once_with("user-2", {"slack_user_id": "U1", "slack_username": "bob.slack"})
        database.conn.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_find_by_slack_id_prefers_latest_user(self, database, cursor):
        cursor.fetchone.return_value = {"id": "user-2", "github_username": "bob", "slack_user_id": "U1"}

        user = await UserStore(database).find_by_slack_id("U1")

        query, params = cursor.execute.await_args.args
        assert query == "SELECT * FROM users WHERE slack_user_id = %s ORDER BY updated_at DESC LIMIT 1"
        assert params == ["U1"]
        assert user.github_username == "bob"


class TestUserMappingStore:

    @pytest.mark.asyncio
    async def test_latest_mapping_wins(self, database):
        store = UserMappingStore(database)
        existing = UserMapping(id="m-1", github_username="alice", slack_user_id="U1", slack_username="old")

        with patch.object(store, "find_by_github_username", AsyncMock(return_value=existing)), \
                patch.object(store, "update", AsyncMock(return_value=existing)) as update, \
                patch.object(store, "create", AsyncMock()) as create:
            await store.upsert_by_github_username("alice", "U2", "new")

        update.assert_awaited_once_with("m-1", {"slack_user_id": "U2", "slack_username": "new"})
        create.assert_not_called()
