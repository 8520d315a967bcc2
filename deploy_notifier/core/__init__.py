"""Core domain logic for Deploy Notifier."""

from .config import load_settings, parse_settings, resolve_config_dir
from .errors import (
    ChatError,
    ConfigError,
    DeployCancelled,
    DeployCommandFailed,
    DeployNotifierError,
    ScmError,
)
from .models import (
    ChatBackend,
    ChatMessage,
    CommitLogEntry,
    DeploymentContext,
    MessageFormat,
    NotifierSettings,
    SendOptions,
)

__all__ = [
    "load_settings",
    "parse_settings",
    "resolve_config_dir",
    "DeployNotifierError",
    "ConfigError",
    "ChatError",
    "ScmError",
    "DeployCancelled",
    "DeployCommandFailed",
    "ChatBackend",
    "ChatMessage",
    "CommitLogEntry",
    "DeploymentContext",
    "MessageFormat",
    "NotifierSettings",
    "SendOptions",
]
