"""
Slack slash command handling.

Commands manage the subscriptions of the calling Slack user in the channel
the command was typed in:

    /subscribe owner/repo [event ...]
    /unsubscribe owner/repo
    /list
    /pause owner/repo
    /resume owner/repo
    /map-user github-username

Commands run after Slack has been acknowledged; the outcome is posted to
the command's response_url.
"""

import re
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from pullis.db.repositories import RepositoryStore
from pullis.db.subscriptions import SubscriptionStore
from pullis.db.user_mappings import UserMappingStore
from pullis.db.users import UserStore
from pullis.models.command import CommandResponse, SlackCommand
from pullis.models.repository import RepositoryRecord
from pullis.models.subscription import Subscription, SubscriptionCreate
from pullis.models.user import User
from pullis.services.slack_client import SlackClient
from pullis.utils.logging import get_logger, log_error_with_context

logger = get_logger(__name__)

EVENT_CATEGORY = "pull_request"

DEFAULT_EVENTS = [
    "pull_request.opened",
    "pull_request.closed",
    "pull_request.reopened",
    "pull_request.merged",
    "pull_request.ready_for_review",
    "pull_request.review_requested",
]

_EVENT_TOKEN = re.compile(r"^(?:pull_request\.)?(?P<action>[a-z_]+)$")
_REPO_NAME = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")

ERROR_TEXT = "An error occurred while processing your command. Please try again later."


class CommandError(Exception):
    """Command failure whose message is shown to the Slack user."""
    pass


def parse_events(tokens: List[str]) -> List[str]:
    """
    Normalize event arguments to qualified event names.

    'opened' and 'pull_request.opened' both become 'pull_request.opened'.
    Duplicates are dropped, order is kept. No tokens means the default set.

    Raises:
        CommandError: If a token is not a valid event name
    """
    if not tokens:
        return list(DEFAULT_EVENTS)

    events: List[str] = []
    for token in tokens:
        match = _EVENT_TOKEN.match(token.strip().lower())
        if not match:
            raise CommandError(f"`{token}` is not a pull request event, e.g. `opened` or `pull_request.merged`.")
        event_name = f"{EVENT_CATEGORY}.{match.group('action')}"
        if event_name not in events:
            events.append(event_name)
    return events


class SlackCommandService:
    """Executes slash commands against the stores."""

    def __init__(
        self,
        users: UserStore,
        repositories: RepositoryStore,
        subscriptions: SubscriptionStore,
        user_mappings: UserMappingStore,
        slack_client: SlackClient,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.users = users
        self.repositories = repositories
        self.subscriptions = subscriptions
        self.user_mappings = user_mappings
        self.slack_client = slack_client
        self.http_client = http_client or httpx.AsyncClient(timeout=10.0)

        self._handlers: Dict[str, Callable[[SlackCommand], Awaitable[CommandResponse]]] = {
            "/subscribe": self.subscribe,
            "/unsubscribe": self.unsubscribe,
            "/list": self.list_subscriptions,
            "/pause": self.pause,
            "/resume": self.resume,
            "/map-user": self.map_user,
        }

    @property
    def commands(self) -> List[str]:
        return list(self._handlers)

    async def close(self) -> None:
        await self.http_client.aclose()

    async def run(self, command: SlackCommand) -> None:
        """
        Execute a command and post the outcome to its response_url.

        Never raises: failures are logged and reported to the user.
        """
        try:
            response = await self.execute(command)
        except Exception as e:
            log_error_with_context(
                logger,
                "Error processing Slack command",
                e,
                command=command.command,
                channel_id=command.channel_id,
            )
            response = CommandResponse(text=ERROR_TEXT)

        try:
            await self.respond(command.response_url, response)
        except httpx.HTTPError as e:
            log_error_with_context(
                logger,
                "Failed to post Slack command response",
                e,
                command=command.command,
                channel_id=command.channel_id,
            )

    async def execute(self, command: SlackCommand) -> CommandResponse:
        """
        Execute a command and build the reply.

        User mistakes become a reply; anything else propagates.
        """
        logger.info(
            f"Executing Slack command {command.command}",
            extra={"command": command.command, "channel_id": command.channel_id, "slack_user_id": command.user_id}
        )

        handler = self._handlers.get(command.command)
        if handler is None:
            return CommandResponse(text=f"Unknown command: {command.command}")

        try:
            return await handler(command)
        except CommandError as e:
            return CommandResponse(text=str(e))

    async def respond(self, response_url: str, response: CommandResponse) -> None:
        """Post a reply to a slash command's response_url."""
        message = response.model_dump()
        if not message["blocks"]:
            del message["blocks"]

        result = await self.http_client.post(response_url, json=message)
        result.raise_for_status()

    # ========== Commands ==========

    async def subscribe(self, command: SlackCommand) -> CommandResponse:
        repo_name, event_tokens = self._split_repository_argument(command, usage="/subscribe owner/repo [event ...]")
        events = parse_events(event_tokens)
        user = await self._require_user(command)
        repository = await self._require_repository(repo_name)

        subscription = await self.subscriptions.upsert(SubscriptionCreate(
            user_id=user.id,
            repository_id=repository.id,
            slack_channel_id=command.channel_id,
            events=events,
        ))

        logger.info(
            f"Subscribed channel {command.channel_id} to {repository.full_name}",
            extra={"channel_id": command.channel_id, "repository_id": repository.id, "events": subscription.events}
        )
        return CommandResponse(
            text=f"Subscribed this channel to {repository.full_name}: {self._describe_events(subscription.events)}."
        )

    async def unsubscribe(self, command: SlackCommand) -> CommandResponse:
        repo_name, _ = self._split_repository_argument(command, usage="/unsubscribe owner/repo")
        subscription, repository = await self._require_subscription(command, repo_name)

        await self.subscriptions.delete(subscription.id)

        logger.info(
            f"Unsubscribed channel {command.channel_id} from {repository.full_name}",
            extra={"channel_id": command.channel_id, "repository_id": repository.id}
        )
        return CommandResponse(text=f"Unsubscribed this channel from {repository.full_name}.")

    async def list_subscriptions(self, command: SlackCommand) -> CommandResponse:
        user = await self._require_user(command)
        subscriptions = await self.subscriptions.find_for_user_and_channel(user.id, command.channel_id)

        if not subscriptions:
            return CommandResponse(text="You have no subscriptions in this channel.")

        lines = []
        for subscription in subscriptions:
            repository = await self.repositories.find_by_id(subscription.repository_id)
            name = repository.full_name if repository else subscription.repository_id
            paused = " (paused)" if not subscription.is_active else ""
            lines.append(f"• *{name}*{paused}: {self._describe_events(subscription.events)}")

        header = "Your current subscriptions in this channel:"
        return CommandResponse(
            text=header,
            blocks=[
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"*{header}*\n" + "\n".join(lines)},
                }
            ],
        )

    async def pause(self, command: SlackCommand) -> CommandResponse:
        return await self._toggle(command, is_active=False)

    async def resume(self, command: SlackCommand) -> CommandResponse:
        return await self._toggle(command, is_active=True)

    async def map_user(self, command: SlackCommand) -> CommandResponse:
        if len(command.args) != 1:
            raise CommandError("Usage: `/map-user github-username`")

        github_username = command.args[0].lstrip("@")
        slack_username = await self.slack_client.get_user_name(command.user_id)

        await self.user_mappings.upsert_by_github_username(
            github_username=github_username,
            slack_user_id=command.user_id,
            slack_username=slack_username,
        )
        await self.users.link_slack_identity(
            github_username=github_username,
            slack_user_id=command.user_id,
            slack_username=slack_username,
        )

        logger.info(f"Mapped GitHub user {github_username} to Slack user {command.user_id}")
        return CommandResponse(text=f"Mapped GitHub user @{github_username} to Slack user @{slack_username}.")

    # ========== Helpers ==========

    async def _toggle(self, command: SlackCommand, is_active: bool) -> CommandResponse:
        verb = "resume" if is_active else "pause"
        repo_name, _ = self._split_repository_argument(command, usage=f"/{verb} owner/repo")
        subscription, repository = await self._require_subscription(command, repo_name)

        await self.subscriptions.toggle_subscription(subscription.id, is_active)

        state = "resumed" if is_active else "paused"
        return CommandResponse(text=f"Notifications for {repository.full_name} {state} in this channel.")

    def _split_repository_argument(self, command: SlackCommand, usage: str) -> Tuple[str, List[str]]:
        args = command.args
        if not args:
            raise CommandError(f"Usage: `{usage}`")

        repo_name = args[0].strip()
        if not _REPO_NAME.match(repo_name):
            raise CommandError(f"`{repo_name}` is not a repository name. Usage: `{usage}`")
        return repo_name, args[1:]

    async def _require_user(self, command: SlackCommand) -> User:
        user = await self.users.find_by_slack_id(command.user_id)
        if user is None:
            raise CommandError("Map your GitHub account first with `/map-user github-username`.")
        return user

    async def _require_repository(self, repo_name: str) -> RepositoryRecord:
        repository = await self.repositories.find_by_full_name(repo_name)
        if repository is None:
            raise CommandError(
                f"Repository {repo_name} is not tracked. Install the GitHub App on it first."
            )
        return repository

    async def _require_subscription(
        self,
        command: SlackCommand,
        repo_name: str
    ) -> Tuple[Subscription, RepositoryRecord]:
        user = await self._require_user(command)
        repository = await self._require_repository(repo_name)

        subscription = await self.subscriptions.find_for_user_repository_and_channel(
            user.id, repository.id, command.channel_id
        )
        if subscription is None:
            raise CommandError(f"This channel is not subscribed to {repository.full_name}.")
        return subscription, repository

    @staticmethod
    def _describe_events(events: List[str]) -> str:
        if not events:
            return "no events"
        return ", ".join(f"`{event}`" for event in events)
