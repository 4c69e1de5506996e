"""
Unit tests for NotificationPipeline.

Matching, formatting and delivery run for real; only the stores and the
Slack client are mocked.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from pullis.services.delivery_dispatcher import DeliveryDispatcher
from pullis.services.event_matcher import EventMatcher
from pullis.services.notification_formatter import NotificationFormatter
from pullis.services.notification_pipeline import NotificationPipeline
from pullis.services.slack_client import DeliveryError

from tests.unit.factories import make_event, make_repository, make_subscription


@pytest.fixture
def repositories():
    store = MagicMock()
    store.find_by_github_id = AsyncMock(
        side_effect=lambda github_id: make_repository() if github_id == 42 else None
    )
    return store


@pytest.fixture
def subscriptions():
    store = MagicMock()
    store.find_by_repository_id = AsyncMock(return_value=[
        make_subscription(id="sub-1", channel_id="C1", events=["pull_request.opened"]),
    ])
    return store


@pytest.fixture
def user_mappings():
    store = MagicMock()
    store.find_by_github_username = AsyncMock(return_value=None)
    return store


@pytest.fixture
def slack_client():
    client = MagicMock()
    client.post_message = AsyncMock()
    return client


@pytest.fixture
def pipeline(repositories, subscriptions, user_mappings, slack_client):
    return NotificationPipeline(
        matcher=EventMatcher(repositories, subscriptions),
        formatter=NotificationFormatter(user_mappings),
        dispatcher=DeliveryDispatcher(slack_client),
        delivery_timeout=1.0,
    )


@pytest.mark.asyncio
async def test_opened_event_delivered_to_subscribed_channel(pipeline, slack_client):
    result = await pipeline.process(make_event(action="opened", repository_external_id=42))

    assert result.event_name == "pull_request.opened"
    assert result.matched_count == 1
    assert result.delivered_count == 1
    assert result.success
    slack_client.post_message.assert_awaited_once()
    assert slack_client.post_message.await_args.args[0] == "C1"


@pytest.mark.asyncio
async def test_unsubscribed_event_sends_nothing(pipeline, slack_client):
    result = await pipeline.process(make_event(action="closed", repository_external_id=42))

    assert result.matched_count == 0
    slack_client.post_message.assert_not_called()


@pytest.mark.asyncio
async def test_untracked_repository_sends_nothing(pipeline, slack_client):
    result = await pipeline.process(make_event(repository_external_id=7))

    assert result.matched_count == 0
    assert result.success
    slack_client.post_message.assert_not_called()


@pytest.mark.asyncio
async def test_failed_channel_does_not_stop_others(pipeline, subscriptions, slack_client):
    subscriptions.find_by_repository_id.return_value = [
        make_subscription(id="sub-1", channel_id="C1"),
        make_subscription(id="sub-2", channel_id="C2"),
        make_subscription(id="sub-3", channel_id="C3"),
    ]

    async def post_message(channel_id, text, blocks=None):
        if channel_id == "C2":
            raise DeliveryError("Slack rejected message: channel_not_found", channel_id)

    slack_client.post_message.side_effect = post_message

    result = await pipeline.process(make_event())

    assert result.matched_count == 3
    assert result.delivered_count == 2
    assert result.failed_count == 1
    assert not result.success
    assert result.errors[0].startswith("C2: ")
    delivered_to = sorted(call.args[0] for call in slack_client.post_message.await_args_list)
    assert delivered_to == ["C1", "C2", "C3"]


@pytest.mark.asyncio
async def test_slow_delivery_times_out(pipeline, slack_client):
    pipeline.delivery_timeout = 0.01

    async def slow_post(channel_id, text, blocks=None):
        await asyncio.sleep(1)

    slack_client.post_message.side_effect = slow_post

    result = await pipeline.process(make_event())

    assert result.failed_count == 1
    assert "timed out" in result.errors[0]


@pytest.mark.asyncio
async def test_formatting_failure_is_isolated(pipeline, subscriptions, slack_client):
    subscriptions.find_by_repository_id.return_value = [
        make_subscription(id="sub-1", channel_id="C1"),
        make_subscription(id="sub-2", channel_id="C2"),
    ]
    original_format = pipeline.formatter.format

    async def format_or_fail(event, subscription, repository):
        if subscription.slack_channel_id == "C1":
            raise ValueError("bad template")
        return await original_format(event, subscription, repository)

    pipeline.formatter.format = format_or_fail

    result = await pipeline.process(make_event())

    assert result.delivered_count == 1
    assert result.failed_count == 1
    assert result.errors == ["C1: bad template"]
    slack_client.post_message.assert_awaited_once()
