"""
Notification Formatter component.

Turns a matched pull request event into a Slack message: a plain-text
summary for clients that do not render blocks, plus Block Kit blocks.
"""

from typing import Any, Dict, List

from pullis.db.user_mappings import UserMappingStore
from pullis.models.event import InboundEvent
from pullis.models.message import ChannelMessage
from pullis.models.repository import RepositoryRecord
from pullis.models.subscription import Subscription
from pullis.utils.logging import get_logger, log_error_with_context

logger = get_logger(__name__)

BODY_PREVIEW_LENGTH = 200

ACTION_PHRASES = {
    "opened": "New pull request",
    "closed": "Pull request closed",
    "reopened": "Pull request reopened",
    "merged": "Pull request merged",
    "review_requested": "Review requested",
    "review_request_removed": "Review request removed",
    "ready_for_review": "Ready for review",
    "converted_to_draft": "Converted to draft",
    "labeled": "Label added",
    "unlabeled": "Label removed",
    "assigned": "Assigned",
    "unassigned": "Unassigned",
    "synchronize": "New commits pushed",
}


def action_phrase(action: str) -> str:
    """Human-readable phrase for a pull request action."""
    return ACTION_PHRASES.get(action, f"Pull request {action}")


def truncate_body(body: str, limit: int = BODY_PREVIEW_LENGTH) -> str:
    """First ``limit`` characters of ``body``, with '...' appended if anything was cut."""
    if len(body) > limit:
        return body[:limit] + "..."
    return body


class NotificationFormatter:
    """Formats pull request events for a subscription's Slack channel."""

    def __init__(self, user_mappings: UserMappingStore):
        self.user_mappings = user_mappings

    async def format(
        self,
        event: InboundEvent,
        subscription: Subscription,
        repository: RepositoryRecord
    ) -> ChannelMessage:
        """
        Build the message for one matched subscription.

        Args:
            event: Inbound pull request event
            subscription: Matched subscription (provides the channel)
            repository: Tracked repository the event belongs to

        Returns:
            Channel-addressed message
        """
        pr = event.payload
        phrase = action_phrase(event.action)
        mention = await self.format_mention(event.actor_username)
        repo_name = repository.full_name

        blocks: List[Dict[str, Any]] = [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*<{pr.url}|{repo_name}#{pr.number}: {pr.title}>*",
                },
                "accessory": {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View PR", "emoji": True},
                    "url": pr.url,
                    "action_id": "view_pr",
                },
            },
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f":git-pull-request: *{phrase}* by {mention} in *{repo_name}*",
                    }
                ],
            },
        ]

        if pr.body:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": truncate_body(pr.body)},
            })

        if pr.has_diff_stats:
            blocks.append({
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": (
                            f":heavy_plus_sign: {pr.additions} | "
                            f":heavy_minus_sign: {pr.deletions} | "
                            f":file_folder: {pr.changed_files} files"
                        ),
                    }
                ],
            })

        return ChannelMessage(
            channel_id=subscription.slack_channel_id,
            plain_text=f"{phrase}: {repo_name}#{pr.number} by {event.actor_username} - {pr.title}",
            blocks=blocks,
        )

    async def format_mention(self, github_username: str) -> str:
        """
        Slack mention for a GitHub user.

        Mapped users become ``<@SLACK_ID>``; anyone else, or any lookup
        failure, falls back to the bold GitHub username.
        """
        try:
            mapping = await self.user_mappings.find_by_github_username(github_username)
        except Exception as e:
            log_error_with_context(
                logger,
                "Error looking up user mapping for mention",
                e,
                github_username=github_username,
            )
            return f"*{github_username}*"

        if mapping:
            return f"<@{mapping.slack_user_id}>"
        return f"*{github_username}*"
