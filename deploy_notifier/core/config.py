"""Configuration loader."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .models import ChatBackend, MessageFormat, NotifierSettings

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path("~/.deploy-notifier").expanduser()
CONFIG_DIR_ENV = "DEPLOY_NOTIFIER_CONFIG_DIR"
ENV_FILE_NAME = ".env"
SETTINGS_FILE = "notifier.yaml"


def resolve_config_dir(config_dir: Path | str | None) -> Path:
    """Resolve and validate the directory containing .env + notifier.yaml."""
    raw = config_dir or os.getenv(CONFIG_DIR_ENV)
    target = (Path(raw).expanduser() if raw else DEFAULT_CONFIG_DIR).resolve()
    if not target.exists():
        raise ConfigError(
            f"Config directory {target} does not exist. "
            "Run `deploy-notifier init` or create it with .env and notifier.yaml."
        )
    if not target.is_dir():
        raise ConfigError(f"Config directory {target} is not a directory")
    return target


def load_settings(config_dir: Path | str | None = None) -> NotifierSettings:
    """Load notifier settings from the provided or default directory."""
    root = resolve_config_dir(config_dir)
    _load_env_file(root / ENV_FILE_NAME)
    return _load_settings_file(root / SETTINGS_FILE)


def _load_env_file(path: Path) -> None:
    if not path.exists():
        LOGGER.warning("No .env file found at %s; relying on shell environment.", path)
        return
    load_dotenv(dotenv_path=path, override=False)


def _load_settings_file(path: Path) -> NotifierSettings:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"{SETTINGS_FILE} not found at {path}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {SETTINGS_FILE} structure at {path}")
    return parse_settings(data)


def parse_settings(data: Dict[str, Any]) -> NotifierSettings:
    """Build settings from the parsed YAML mapping, applying defaults."""
    chat = _section(data, "chat")
    messages = _section(data, "messages")
    commit_log = _section(data, "commit_log")
    cancellation = _section(data, "cancellation")
    defaults = NotifierSettings()

    backend_raw = str(chat.get("backend", defaults.backend.value)).lower()
    try:
        backend = ChatBackend(backend_raw)
    except ValueError as exc:
        raise ConfigError(f"Unsupported chat.backend: {backend_raw}") from exc

    format_raw = str(messages.get("format", defaults.message_format.value)).lower()
    try:
        message_format = MessageFormat(format_raw)
    except ValueError as exc:
        raise ConfigError(f"Unsupported messages.format: {format_raw}") from exc

    options = chat.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigError("chat.options must be a mapping")

    pattern = commit_log.get("message_pattern")
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ConfigError(f"Invalid commit_log.message_pattern: {exc}") from exc

    settings = NotifierSettings(
        enabled=bool(data.get("enabled", defaults.enabled)),
        backend=backend,
        rooms=_parse_rooms(chat.get("rooms")),
        client_options=options,
        deploy_user=str(data.get("deploy_user") or defaults.deploy_user),
        human=data.get("human"),
        env=data.get("env"),
        color=messages.get("color"),
        success_color=messages.get("success_color", defaults.success_color),
        failed_color=messages.get("failed_color", defaults.failed_color),
        announce=bool(messages.get("announce", defaults.announce)),
        message_format=message_format,
        revision_format=messages.get("revision_format", defaults.revision_format),
        commit_log=bool(commit_log.get("enabled", defaults.commit_log)),
        commit_log_format=commit_log.get("format", defaults.commit_log_format),
        commit_log_time_format=commit_log.get("time_format", defaults.commit_log_time_format),
        commit_log_message_pattern=pattern,
        give_opportunity_to_cancel=bool(cancellation.get("enabled", defaults.give_opportunity_to_cancel)),
        cancellation_window=_positive_int(cancellation, "window", defaults.cancellation_window),
        poll_interval=_positive_int(cancellation, "poll_interval", defaults.poll_interval),
    )
    _validate(settings)
    return settings


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _parse_rooms(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, int)):
        return [str(value)]
    if isinstance(value, list):
        return [str(room) for room in value if str(room).strip()]
    raise ConfigError(f"Unsupported chat.rooms value: {value!r}")


def _positive_int(section: Dict[str, Any], key: str, default: int) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"cancellation.{key} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"cancellation.{key} must be positive")
    return value


def _validate(settings: NotifierSettings) -> None:
    if settings.enabled and not settings.rooms:
        raise ConfigError("chat.rooms must name at least one room")
    if settings.give_opportunity_to_cancel and settings.backend is ChatBackend.WEBHOOK:
        raise ConfigError(
            "cancellation requires reading room history; the webhook backend is send-only"
        )
    try:
        settings.revision_format.format(revision="")
    except (KeyError, IndexError, ValueError) as exc:
        raise ConfigError(f"Invalid messages.revision_format: {exc}") from exc
