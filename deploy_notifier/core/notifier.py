"""Posts deployment lifecycle notices to chat rooms."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from typing import Awaitable, Callable, Dict, List, Optional

from ..chat_adapters.factory import build_chat_adapter
from ..chat_adapters.i_chat_adapter import IChatAdapter
from ..scm.commit_log import read_commit_log
from .errors import ChatError, DeployCancelled, ScmError
from .models import DeploymentContext, MessageFormat, NotifierSettings, SendOptions

LOGGER = logging.getLogger(__name__)

HUMAN_ENV = "DEPLOY_NOTIFIER_USER"
CANCEL_PHRASE = "cancel deploy"
MIGRATIONS_SUFFIX = " (with migrations)"

SleepFn = Callable[[float], Awaitable[None]]
CommitLogReader = Callable[[DeploymentContext, NotifierSettings], Awaitable[List[str]]]


class DeployNotifier:
    """Formats deploy notices and sends them to every configured room."""

    def __init__(
        self,
        settings: NotifierSettings,
        context: DeploymentContext,
        chat_adapter: Optional[IChatAdapter] = None,
        sleep: SleepFn = asyncio.sleep,
        commit_log_reader: CommitLogReader = read_commit_log,
    ) -> None:
        self._settings = settings
        self._context = context
        self._chat_adapter = chat_adapter
        self._sleep = sleep
        self._commit_log_reader = commit_log_reader
        self._human: Optional[str] = None
        self.send_notification = False
        self.with_migrations = ""
        self._announcement_ts: Dict[str, str] = {}

    @property
    def settings(self) -> NotifierSettings:
        return self._settings

    @property
    def context(self) -> DeploymentContext:
        return self._context

    def trigger_notification(self) -> None:
        if self._context.dry_run:
            LOGGER.info("Dry run - chat notifications disabled")
            return
        self.send_notification = True

    def configure_for_migrations(self) -> None:
        self.with_migrations = MIGRATIONS_SUFFIX

    async def notify_deploy_started(self) -> None:
        if not self.send_notification:
            return
        if self._settings.give_opportunity_to_cancel:
            await self.wait_for_cancellation()
            return

        human = await self.human()
        await self.send(
            f"{human} is deploying {self.deployment_name} to "
            f"{self.environment_string}{self.with_migrations}.",
            self.send_options,
        )

    async def notify_deploy_cancelled(self) -> None:
        if not self.send_notification:
            return
        human = await self.human()
        await self.send(
            f"{human} cancelled deployment of {self.deployment_name} to {self.environment_string}.",
            self.send_options.merge(color=self._settings.failed_color),
        )

    async def notify_deploy_finished(self) -> None:
        if not self.send_notification:
            return
        options = self.send_options.merge(color=self._settings.success_color)

        if self._settings.commit_log:
            logs = await self._commit_logs()
            if logs:
                await self.send(self.commit_log_line_separator.join(logs), options)

        human = await self.human()
        await self.send(
            f"{human} finished deploying {self.deployment_name} to "
            f"{self.environment_string}{self.with_migrations}.",
            options,
        )

    async def wait_for_cancellation(self) -> None:
        """Announce the deploy and give the room a window to call it off.

        Raises:
            DeployCancelled: when a room message asks to cancel the deploy.
        """
        window = self._settings.cancellation_window
        interval = self._settings.poll_interval
        human = await self.human()
        self._announcement_ts = await self.send(
            f"@here {human} is deploying {self.deployment_name} to "
            f"{self.environment_string}{self.with_migrations}. "
            f"Reply with a message containing '{CANCEL_PHRASE}' to cancel.  "
            f"Otherwise, the deploy will proceed in {window} seconds.",
            self.send_options.merge(notify=True),
        )
        LOGGER.info("Allowing %s seconds for users to cancel deploy via chat message.", window)

        for _ in range(window // interval):
            await self._sleep(interval)
            if await self._any_room_cancelled():
                await self.send("Cancelling deploy.", self.send_options)
                raise DeployCancelled("Cancelling deploy based on chat message")

        await self.send(f"Proceeding with deploy of {self.deployment_name}.", self.send_options)
        LOGGER.info("No chat message - proceeding with deploy.")

    async def found_cancellation_message(self, room: str) -> bool:
        adapter = self._get_adapter()
        announced_at = _ts_value(self._announcement_ts.get(room))
        for message in await adapter.history(room):
            # Anything up to our own announcement belongs to a previous deploy.
            posted_at = _ts_value(message.ts)
            if announced_at is not None and posted_at is not None and posted_at <= announced_at:
                return False
            if self._settings.deploy_user in message.sender:
                return False
            if CANCEL_PHRASE in message.text:
                return True
        return False

    async def send(self, message: str, options: SendOptions) -> Dict[str, str]:
        """Post to every room; returns the message ts of each room that accepted it."""
        if not self._settings.enabled:
            return {}

        adapter = self._get_adapter()
        posted: Dict[str, str] = {}
        for room in self._settings.rooms:
            try:
                ts = await adapter.send(room, self._settings.deploy_user, message, options)
            except ChatError:
                LOGGER.exception("Failed to post deploy notice to %s", room)
                continue
            if ts is not None:
                posted[room] = ts
        return posted

    async def close(self) -> None:
        if self._chat_adapter is not None:
            await self._chat_adapter.close()

    @property
    def send_options(self) -> SendOptions:
        return SendOptions(
            message_format=self._settings.message_format,
            notify=self._settings.announce,
            color=self._settings.color,
        )

    @property
    def deployment_name(self) -> str:
        context = self._context
        if not context.branch:
            return context.application
        name = f"{context.application}/{context.branch}"
        if context.revision:
            name += " " + self._settings.revision_format.format(revision=context.revision[:8])
        return name

    @property
    def env(self) -> str:
        return self._settings.env or self._context.environment or "production"

    @property
    def environment_string(self) -> str:
        if self._context.stage:
            return f"{self._context.stage} ({self.env})"
        return self.env

    @property
    def commit_log_line_separator(self) -> str:
        return "<br/>" if self._settings.message_format is MessageFormat.HTML else "\n"

    async def human(self) -> str:
        """Name of the person running the deploy."""
        if self._human is None:
            self._human = (
                os.getenv(HUMAN_ENV)
                or self._settings.human
                or await asyncio.to_thread(_git_user_name)
                or os.getenv("USER")
                or "Someone"
            )
        return self._human

    async def _any_room_cancelled(self) -> bool:
        for room in self._settings.rooms:
            try:
                if await self.found_cancellation_message(room):
                    return True
            except ChatError:
                LOGGER.exception("Failed to read chat history for %s", room)
        return False

    async def _commit_logs(self) -> List[str]:
        try:
            return await self._commit_log_reader(self._context, self._settings)
        except ScmError:
            LOGGER.exception("Could not read commit log for %s", self._context.application)
            return []

    def _get_adapter(self) -> IChatAdapter:
        if self._chat_adapter is None:
            self._chat_adapter = build_chat_adapter(self._settings)
        return self._chat_adapter


def _git_user_name() -> str:
    try:
        result = subprocess.run(
            ["git", "config", "user.name"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return ""
    return result.stdout.strip()


def _ts_value(ts: Optional[str]) -> Optional[float]:
    if ts is None:
        return None
    try:
        return float(ts)
    except ValueError:
        return None
