"""
GitHub App endpoints: webhook receiver and installation URL.
"""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request

from pullis.models.api_response import WebhookResponse
from pullis.models.event import InboundEvent
from pullis.services.container import ServiceContainer, get_services
from pullis.services.github_events import (
    MalformedEventError,
    WebhookSignatureError,
    parse_pull_request_event,
    verify_github_signature,
)
from pullis.services.redis_client import RedisConnectionError
from pullis.utils.logging import get_logger, log_github_event

logger = get_logger(__name__)

router = APIRouter(prefix="/api/github", tags=["github"])

BOOKKEEPING_EVENTS = {"installation", "installation_repositories", "repository"}


async def claim_delivery(services: ServiceContainer, delivery_id: Optional[str]) -> bool:
    """
    Claim a webhook delivery id; False means it was already processed.

    Without Redis every delivery is processed.
    """
    if not delivery_id:
        return True

    try:
        return await services.redis_client.claim_delivery(
            delivery_id,
            services.settings.webhook_dedup_ttl_seconds
        )
    except (RedisConnectionError, RuntimeError) as e:
        logger.warning(
            f"Delivery de-duplication unavailable, processing anyway: {e}",
            extra={"delivery_id": delivery_id}
        )
        return True


async def process_pull_request_async(services: ServiceContainer, event: InboundEvent) -> None:
    """
    Run the notification pipeline for an event in the background.

    Args:
        services: Service container
        event: Inbound pull request event
    """
    try:
        await services.pipeline.process(event)
    except Exception as e:
        logger.error(
            f"Error processing pull request event asynchronously: {e}",
            extra={"delivery_id": event.delivery_id, "event_name": event.qualified_name},
            exc_info=True
        )
        if event.delivery_id:
            # Let GitHub's redelivery retry the event
            try:
                await services.redis_client.release_delivery(event.delivery_id)
            except (RedisConnectionError, RuntimeError) as release_error:
                logger.warning(f"Could not release delivery {event.delivery_id}: {release_error}")


async def process_bookkeeping_async(
    services: ServiceContainer,
    event_type: str,
    payload: Dict[str, Any]
) -> None:
    """
    Apply an installation or repository event in the background.

    Args:
        services: Service container
        event_type: X-GitHub-Event header value
        payload: Parsed webhook payload
    """
    try:
        await services.installations.handle_event(event_type, payload)
    except Exception as e:
        logger.error(f"Error processing {event_type} webhook asynchronously: {e}", exc_info=True)


@router.post("/webhook", response_model=WebhookResponse)
async def handle_github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    services: ServiceContainer = Depends(get_services),
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_github_delivery: Optional[str] = Header(None, alias="X-GitHub-Delivery"),
    x_hub_signature_256: Optional[str] = Header(None, alias="X-Hub-Signature-256")
) -> WebhookResponse:
    """
    Receive GitHub App webhook events.

    This endpoint:
    1. Validates the webhook signature
    2. Parses pull_request events into inbound events (400 when malformed)
    3. Skips redelivered webhooks
    4. Returns 200 immediately and processes the event in the background

    Raises:
        HTTPException: If signature validation fails or payload is invalid
    """
    payload = await request.body()

    try:
        verify_github_signature(payload, x_hub_signature_256, services.settings.github_webhook_secret)
    except WebhookSignatureError as e:
        logger.warning(f"Rejected webhook: {e}", extra={"delivery_id": x_github_delivery})
        raise HTTPException(status_code=401, detail=str(e))

    try:
        payload_json: Dict[str, Any] = json.loads(payload)
    except ValueError:
        raise HTTPException(status_code=400, detail="Webhook payload is not valid JSON")

    if not isinstance(payload_json, dict):
        raise HTTPException(status_code=400, detail="Webhook payload must be a JSON object")

    event_type = x_github_event or ""

    if event_type == "ping":
        return WebhookResponse(status="ok", message="pong")

    if event_type == "pull_request":
        try:
            event = parse_pull_request_event(payload_json, delivery_id=x_github_delivery)
        except MalformedEventError as e:
            logger.error(f"Invalid pull request payload: {e}", extra={"delivery_id": x_github_delivery})
            raise HTTPException(status_code=400, detail=f"Invalid pull request event payload: {e}")

        log_github_event(
            logger,
            event.qualified_name,
            (payload_json.get("repository") or {}).get("full_name", str(event.repository_external_id)),
            delivery_id=x_github_delivery,
            pr=event.payload.number,
            author=event.actor_username,
        )

        if not await claim_delivery(services, x_github_delivery):
            return WebhookResponse(
                status="ignored",
                message=f"Delivery {x_github_delivery} already processed"
            )

        background_tasks.add_task(process_pull_request_async, services, event)
        return WebhookResponse(
            status="accepted",
            message=f"Event {event.qualified_name} for #{event.payload.number} accepted for processing"
        )

    if event_type in BOOKKEEPING_EVENTS:
        if not await claim_delivery(services, x_github_delivery):
            return WebhookResponse(
                status="ignored",
                message=f"Delivery {x_github_delivery} already processed"
            )

        background_tasks.add_task(process_bookkeeping_async, services, event_type, payload_json)
        return WebhookResponse(
            status="accepted",
            message=f"Event {event_type}.{payload_json.get('action', '')} accepted for processing"
        )

    logger.info(f"Ignoring event type: {event_type}")
    return WebhookResponse(
        status="ignored",
        message=f"Event type {event_type} not processed"
    )


@router.get("/install")
async def get_install_url(services: ServiceContainer = Depends(get_services)) -> dict:
    """Installation URL of the GitHub App."""
    slug = services.settings.github_app_slug
    return {"install_url": f"https://github.com/apps/{slug}/installations/new"}
