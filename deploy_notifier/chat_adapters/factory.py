"""Builds the chat adapter selected in the settings."""

from __future__ import annotations

import os

from .i_chat_adapter import IChatAdapter
from .slack_adapter import SlackAdapter
from .webhook_adapter import WebhookAdapter
from ..core.errors import ConfigError
from ..core.models import ChatBackend, NotifierSettings


def build_chat_adapter(settings: NotifierSettings) -> IChatAdapter:
    if settings.backend is ChatBackend.WEBHOOK:
        return WebhookAdapter(_require_env("SLACK_WEBHOOK_URL"), **settings.client_options)
    return SlackAdapter(_require_env("SLACK_BOT_TOKEN"), **settings.client_options)


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"{name} is not set")
    return value
