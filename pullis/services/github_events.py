"""
GitHub webhook ingress.

Verifies webhook signatures and translates GitHub payloads into the
internal event model. Pure transcoding: no storage access here.
"""

import hashlib
import hmac
from typing import Any, Dict, Optional

from pydantic import ValidationError

from pullis.models.event import InboundEvent, PullRequestPayload
from pullis.models.repository import OwnerType, RepositoryCreate


class WebhookSignatureError(Exception):
    """Raised when a webhook request is not signed with the shared secret."""
    pass


class MalformedEventError(Exception):
    """Raised when a webhook payload lacks fields required for processing."""
    pass


def verify_github_signature(payload: bytes, signature: Optional[str], secret: str) -> None:
    """
    Verify the X-Hub-Signature-256 header of a GitHub webhook.

    Args:
        payload: Raw request body
        signature: Header value, 'sha256=<hex digest>'
        secret: Webhook secret configured on the GitHub App

    Raises:
        WebhookSignatureError: If the signature is missing or does not match
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not signature or not signature.startswith("sha256="):
        raise WebhookSignatureError("Missing webhook signature")

    expected_signature = "sha256=" + hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()

    # Constant-time comparison
    if not hmac.compare_digest(signature, expected_signature):
        raise WebhookSignatureError("Invalid webhook signature")


def parse_pull_request_event(payload: Dict[str, Any], delivery_id: Optional[str] = None) -> InboundEvent:
    """
    Map a GitHub ``pull_request`` webhook payload to an InboundEvent.

    A ``closed`` action on a merged pull request is reported as ``merged``.

    Args:
        payload: Parsed webhook JSON
        delivery_id: X-GitHub-Delivery header value

    Returns:
        InboundEvent

    Raises:
        MalformedEventError: If required fields are missing or invalid
    """
    if not isinstance(payload, dict):
        raise MalformedEventError("Payload must be a JSON object")

    pull_request = payload.get("pull_request")
    repository = payload.get("repository")
    sender = payload.get("sender")

    if not isinstance(pull_request, dict) or not isinstance(repository, dict) or not isinstance(sender, dict):
        raise MalformedEventError("Payload must contain pull_request, repository and sender objects")

    action = payload.get("action") or ""
    if action == "closed" and pull_request.get("merged"):
        action = "merged"

    try:
        return InboundEvent(
            category="pull_request",
            action=action,
            repository_external_id=repository.get("id"),
            actor_username=sender.get("login"),
            delivery_id=delivery_id,
            payload=PullRequestPayload(
                number=pull_request.get("number"),
                title=pull_request.get("title"),
                url=pull_request.get("html_url"),
                body=pull_request.get("body"),
                additions=pull_request.get("additions"),
                deletions=pull_request.get("deletions"),
                changed_files=pull_request.get("changed_files"),
            ),
        )
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in e.errors())
        raise MalformedEventError(f"Invalid pull_request payload: {fields}") from e


def owner_type_for(account_type: Optional[str]) -> OwnerType:
    """GitHub account type ('User', 'Organization', 'Bot') to OwnerType."""
    if account_type == "Organization":
        return OwnerType.ORGANIZATION
    return OwnerType.USER


def parse_repository(repository: Dict[str, Any], owner: Dict[str, Any]) -> RepositoryCreate:
    """
    Map a repository object from a webhook payload to a RepositoryCreate.

    Installation payloads list repositories without an owner, so the
    installation account is passed separately.

    Raises:
        MalformedEventError: If required fields are missing or invalid
    """
    full_name = repository.get("full_name") or ""
    try:
        return RepositoryCreate(
            github_id=repository.get("id"),
            name=repository.get("name") or full_name.split("/")[-1],
            full_name=full_name,
            private=bool(repository.get("private", False)),
            owner_id=str(owner.get("id")),
            owner_type=owner_type_for(owner.get("type")),
        )
    except ValidationError as e:
        raise MalformedEventError(f"Invalid repository in payload: {full_name or repository.get('id')}") from e
