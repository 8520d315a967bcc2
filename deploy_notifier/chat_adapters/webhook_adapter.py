"""Send-only Slack incoming-webhook adapter."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import requests

from .i_chat_adapter import IChatAdapter
from .slack_adapter import message_body, render_text
from ..core.errors import ChatError
from ..core.models import ChatMessage, SendOptions


class WebhookAdapter(IChatAdapter):
    """Posts to an incoming webhook; the room is passed through as ``channel``.

    Webhooks cannot read room history, so the cancellation window is not
    available with this backend.
    """

    def __init__(self, webhook_url: str, timeout: float = 10) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout

    async def send(
        self, room: str, sender: str, message: str, options: SendOptions
    ) -> Optional[str]:
        text = render_text(message, options)
        payload: Dict[str, Any] = {"channel": room, "username": sender, **message_body(text, options.color)}
        await asyncio.to_thread(self._post, payload)
        return None

    async def history(self, room: str, limit: int = 50) -> List[ChatMessage]:
        raise ChatError("Incoming webhooks cannot read room history")

    def _post(self, payload: Dict[str, Any]) -> None:
        try:
            response = requests.post(self._webhook_url, json=payload, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ChatError(f"Failed to post to Slack webhook: {exc}") from exc
