"""
Slack endpoints: slash commands and the Events API.
"""

import json
from typing import Any, Dict, Optional
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from pydantic import ValidationError
from slack_sdk.signature import SignatureVerifier

from pullis.models.command import SlackCommand
from pullis.services.container import ServiceContainer, get_services
from pullis.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/slack", tags=["slack"])


def verify_slack_request(
    services: ServiceContainer,
    body: bytes,
    timestamp: Optional[str],
    signature: Optional[str]
) -> None:
    """
    Check the Slack request signature.

    Raises:
        HTTPException: 401 when the signature is missing, stale or invalid
    """
    secret = services.settings.slack_signing_secret
    if not secret:
        logger.error("Slack signing secret is not configured")
        raise HTTPException(status_code=401, detail="Slack signing secret not configured")

    verifier = SignatureVerifier(secret)
    if not timestamp or not signature or not verifier.is_valid(body=body, timestamp=timestamp, signature=signature):
        logger.warning("Rejected Slack request with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid Slack signature")


@router.post("/commands")
async def handle_slash_command(
    request: Request,
    background_tasks: BackgroundTasks,
    services: ServiceContainer = Depends(get_services),
    x_slack_request_timestamp: Optional[str] = Header(None, alias="X-Slack-Request-Timestamp"),
    x_slack_signature: Optional[str] = Header(None, alias="X-Slack-Signature")
) -> dict:
    """
    Receive a slash command.

    Slack expects an answer within three seconds, so the command is
    acknowledged right away and executed in the background. The outcome is
    posted to the command's response_url.
    """
    body = await request.body()
    verify_slack_request(services, body, x_slack_request_timestamp, x_slack_signature)

    form = {key: values[0] for key, values in parse_qs(body.decode("utf-8")).items()}

    try:
        command = SlackCommand(**form)
    except ValidationError as e:
        logger.error(f"Invalid slash command payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid slash command payload")

    background_tasks.add_task(services.commands.run, command)
    invocation = f"{command.command} {command.text}".strip()
    return {"response_type": "ephemeral", "text": f"Processing `{invocation}`..."}


@router.post("/events")
async def handle_slack_event(
    request: Request,
    background_tasks: BackgroundTasks,
    services: ServiceContainer = Depends(get_services),
    x_slack_request_timestamp: Optional[str] = Header(None, alias="X-Slack-Request-Timestamp"),
    x_slack_signature: Optional[str] = Header(None, alias="X-Slack-Signature")
) -> dict:
    """
    Receive Events API callbacks.

    Answers the url_verification handshake and hands event callbacks to the
    event handler in the background.
    """
    body = await request.body()
    verify_slack_request(services, body, x_slack_request_timestamp, x_slack_signature)

    try:
        envelope: Dict[str, Any] = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Event payload is not valid JSON")

    if not isinstance(envelope, dict):
        raise HTTPException(status_code=400, detail="Event payload must be a JSON object")

    envelope_type = envelope.get("type")

    if envelope_type == "url_verification":
        return {"challenge": envelope.get("challenge")}

    if envelope_type == "event_callback" and isinstance(envelope.get("event"), dict):
        background_tasks.add_task(services.slack_events.handle, envelope["event"])
        return {"ok": True}

    logger.info(f"Ignoring Slack envelope type: {envelope_type}")
    return {"ok": True}
