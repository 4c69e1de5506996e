"""
Unit tests for GitHub webhook verification and payload parsing.
"""

import hashlib
import hmac

import pytest

from pullis.models.repository import OwnerType
from pullis.services.github_events import (
    MalformedEventError,
    WebhookSignatureError,
    owner_type_for,
    parse_pull_request_event,
    parse_repository,
    verify_github_signature,
)


def sign(payload: bytes, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


class TestVerifyGithubSignature:

    def test_valid_signature(self):
        payload = b'{"action": "opened"}'
        verify_github_signature(payload, sign(payload, "s3cret"), "s3cret")

    def test_wrong_secret(self):
        payload = b'{"action": "opened"}'

        with pytest.raises(WebhookSignatureError) as exc_info:
            verify_github_signature(payload, sign(payload, "other"), "s3cret")

        assert "Invalid webhook signature" in str(exc_info.value)

    def test_tampered_payload(self):
        signature = sign(b'{"action": "opened"}', "s3cret")

        with pytest.raises(WebhookSignatureError):
            verify_github_signature(b'{"action": "closed"}', signature, "s3cret")

    @pytest.mark.parametrize("signature", [None, "", "sha1=abc", "abc"])
    def test_missing_or_malformed_signature(self, signature):
        with pytest.raises(WebhookSignatureError):
            verify_github_signature(b"{}", signature, "s3cret")

    def test_unconfigured_secret_rejects_everything(self):
        payload = b"{}"

        with pytest.raises(WebhookSignatureError):
            verify_github_signature(payload, sign(payload, ""), "")


class TestParsePullRequestEvent:

    def test_opened(self, pull_request_payload):
        event = parse_pull_request_event(pull_request_payload, delivery_id="d-1")

        assert event.qualified_name == "pull_request.opened"
        assert event.repository_external_id == 42
        assert event.actor_username == "alice"
        assert event.delivery_id == "d-1"
        assert event.payload.number == 7
        assert event.payload.title == "Add widget"
        assert event.payload.url == "https://github.com/octo/widgets/pull/7"
        assert event.payload.body == "Adds the widget."
        assert (event.payload.additions, event.payload.deletions, event.payload.changed_files) == (10, 2, 3)

    def test_closed_and_merged_becomes_merged(self, pull_request_payload):
        pull_request_payload["action"] = "closed"
        pull_request_payload["pull_request"]["merged"] = True

        event = parse_pull_request_event(pull_request_payload)

        assert event.action == "merged"

    def test_closed_without_merge_stays_closed(self, pull_request_payload):
        pull_request_payload["action"] = "closed"

        event = parse_pull_request_event(pull_request_payload)

        assert event.action == "closed"

    def test_missing_diff_stats_are_optional(self, pull_request_payload):
        for field in ("additions", "deletions", "changed_files", "body"):
            del pull_request_payload["pull_request"][field]

        event = parse_pull_request_event(pull_request_payload)

        assert event.payload.body is None
        assert event.payload.has_diff_stats is False

    @pytest.mark.parametrize("section", ["pull_request", "repository", "sender"])
    def test_missing_section(self, pull_request_payload, section):
        del pull_request_payload[section]

        with pytest.raises(MalformedEventError):
            parse_pull_request_event(pull_request_payload)

    @pytest.mark.parametrize("payload", [[], "x", 5])
    def test_non_object_payload(self, payload):
        with pytest.raises(MalformedEventError):
            parse_pull_request_event(payload)

    def test_missing_title(self, pull_request_payload):
        del pull_request_payload["pull_request"]["title"]

        with pytest.raises(MalformedEventError) as exc_info:
            parse_pull_request_event(pull_request_payload)

        assert "title" in str(exc_info.value)

    def test_missing_action(self, pull_request_payload):
        del pull_request_payload["action"]

        with pytest.raises(MalformedEventError):
            parse_pull_request_event(pull_request_payload)

    def test_missing_repository_id(self, pull_request_payload):
        del pull_request_payload["repository"]["id"]

        with pytest.raises(MalformedEventError):
            parse_pull_request_event(pull_request_payload)


class TestParseRepository:

    def test_organization_owner(self):
        repo = parse_repository(
            {"id": 42, "name": "widgets", "full_name": "octo/widgets", "private": True},
            {"id": 1, "login": "octo", "type": "Organization"},
        )

        assert repo.github_id == 42
        assert repo.full_name == "octo/widgets"
        assert repo.private is True
        assert repo.owner_id == "1"
        assert repo.owner_type == OwnerType.ORGANIZATION

    def test_name_derived_from_full_name(self):
        repo = parse_repository({"id": 42, "full_name": "octo/widgets"}, {"id": 5, "type": "User"})

        assert repo.name == "widgets"
        assert repo.owner_type == OwnerType.USER

    def test_invalid_repository(self):
        with pytest.raises(MalformedEventError):
            parse_repository({"full_name": "octo/widgets"}, {"id": 1})

    def test_owner_type_for_bot_is_user(self):
        assert owner_type_for("Bot") == OwnerType.USER
        assert owner_type_for(None) == OwnerType.USER
