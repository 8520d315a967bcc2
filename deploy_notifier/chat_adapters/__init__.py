"""Chat service backends."""

from .factory import build_chat_adapter
from .i_chat_adapter import IChatAdapter
from .slack_adapter import SlackAdapter
from .webhook_adapter import WebhookAdapter

__all__ = ["IChatAdapter", "SlackAdapter", "WebhookAdapter", "build_chat_adapter"]
