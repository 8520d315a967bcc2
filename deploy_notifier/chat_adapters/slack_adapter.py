"""Slack adapter using the official Slack SDK."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from .i_chat_adapter import IChatAdapter
from ..core.errors import ChatError
from ..core.models import ChatMessage, MessageFormat, SendOptions

LOGGER = logging.getLogger(__name__)

# Slack attachment colours only know a few names; anything else is sent as-is (hex).
COLOR_NAMES = {
    "green": "good",
    "red": "danger",
    "yellow": "warning",
}
HTML_LINE_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
HERE_MENTION = re.compile(r"(?<![<\w])@here\b")


class SlackAdapter(IChatAdapter):
    def __init__(self, bot_token: str, **client_options: Any) -> None:
        self._web_client = AsyncWebClient(token=bot_token, **client_options)
        self._channel_id_cache: Dict[str, str] = {}

    async def send(
        self, room: str, sender: str, message: str, options: SendOptions
    ) -> Optional[str]:
        channel = await self._resolve_channel(room)
        text = render_text(message, options)
        kwargs: Dict[str, Any] = {
            "channel": channel,
            "username": sender,
            "link_names": options.notify,
            **message_body(text, options.color),
        }
        try:
            response = await self._web_client.chat_postMessage(**kwargs)
        except SlackApiError as exc:
            raise ChatError(f"Failed to send Slack message to {room}: {exc}") from exc
        return response.get("ts")

    async def history(self, room: str, limit: int = 50) -> List[ChatMessage]:
        channel = await self._resolve_channel(room)
        try:
            response = await self._web_client.conversations_history(channel=channel, limit=limit)
        except SlackApiError as exc:
            raise ChatError(f"Failed to read Slack history for {room}: {exc}") from exc

        return [
            ChatMessage(sender=_sender_of(item), text=item.get("text") or "", ts=item.get("ts"))
            for item in response.get("messages") or []
        ]

    async def close(self) -> None:
        session = getattr(self._web_client, "session", None)
        if session is not None and not session.closed:
            await session.close()

    async def _resolve_channel(self, room: str) -> str:
        if not room.startswith("#"):
            return room
        name = room[1:]
        if name in self._channel_id_cache:
            return self._channel_id_cache[name]
        try:
            async for page in await self._web_client.conversations_list(
                exclude_archived=True, limit=200
            ):
                for channel in page.get("channels") or []:
                    if channel.get("name") == name:
                        self._channel_id_cache[name] = channel["id"]
                        return channel["id"]
        except SlackApiError as exc:
            raise ChatError(f"Failed to resolve Slack channel {room}: {exc}") from exc
        raise ChatError(f"Slack channel {room} not found")


def render_text(message: str, options: SendOptions) -> str:
    """Turn a notifier message into Slack markup."""
    text = message
    if options.message_format is MessageFormat.HTML:
        text = HTML_LINE_BREAK.sub("\n", text)
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return HERE_MENTION.sub("<!here>", text)


def message_body(text: str, color: Optional[str]) -> Dict[str, Any]:
    """Coloured messages carry their body only in the attachment."""
    if not color:
        return {"text": text}
    return {"attachments": [{"color": slack_color(color), "text": text, "fallback": text}]}


def slack_color(color: str) -> str:
    return COLOR_NAMES.get(color.lower(), color)


def _sender_of(item: Dict[str, Any]) -> str:
    profile = item.get("bot_profile") or {}
    return item.get("username") or profile.get("name") or item.get("user") or ""
