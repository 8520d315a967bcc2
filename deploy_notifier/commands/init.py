"""Interactive initialization command for deploy-notifier."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict

import yaml

from ..core.config import ENV_FILE_NAME, SETTINGS_FILE, DEFAULT_CONFIG_DIR, CONFIG_DIR_ENV
from ..core.models import ChatBackend
from .validators import validate_rooms, validate_slack_bot_token, validate_webhook_url

LOGGER = logging.getLogger(__name__)

CONFIG_FILES = (ENV_FILE_NAME, SETTINGS_FILE)


@dataclass
class InitData:
    """Answers collected from the user."""

    backend: ChatBackend
    secret: str
    rooms: list[str]
    deploy_user: str = "Deploy"
    cancellation: bool = False
    commit_log: bool = False


def prompt_with_validation(
    prompt_text: str,
    validator: Callable[[str], tuple[bool, str]],
    default: str | None = None,
) -> str:
    """Prompt until the validator accepts the input."""
    if default:
        prompt_text = f"{prompt_text} [{default}]"
    prompt_text = f"{prompt_text}: "

    while True:
        try:
            user_input = input(prompt_text).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nInitialization cancelled.")
            raise SystemExit(0)

        if not user_input and default:
            user_input = default

        is_valid, error_msg = validator(user_input)
        if is_valid:
            return user_input
        print(f"Error: {error_msg}\n")


def prompt_yes_no(prompt_text: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    try:
        response = input(f"{prompt_text} ({hint}): ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        print("\nInitialization cancelled.")
        raise SystemExit(0)
    if not response:
        return default
    return response == "y"


def interactive_setup() -> InitData:
    print("\nDeploy Notifier setup")
    print("=" * 60)

    backend_raw = prompt_with_validation(
        "Chat backend (slack / webhook)",
        lambda value: (value in {b.value for b in ChatBackend}, "Choose 'slack' or 'webhook'"),
        default=ChatBackend.SLACK.value,
    )
    backend = ChatBackend(backend_raw)

    if backend is ChatBackend.WEBHOOK:
        secret = prompt_with_validation("Slack incoming-webhook URL", validate_webhook_url)
    else:
        secret = prompt_with_validation("Slack bot token (xoxb-...)", validate_slack_bot_token)

    rooms_raw = prompt_with_validation("Rooms to notify (comma-separated)", validate_rooms)
    rooms = [room.strip() for room in rooms_raw.split(",") if room.strip()]
    deploy_user = prompt_with_validation(
        "Sender name for deploy messages",
        lambda value: (bool(value), "Sender name is required"),
        default="Deploy",
    )

    cancellation = False
    if backend is ChatBackend.SLACK:
        cancellation = prompt_yes_no("Give the room a chance to cancel deploys?")
    commit_log = prompt_yes_no("Post the commit log when a deploy finishes?")

    return InitData(
        backend=backend,
        secret=secret,
        rooms=rooms,
        deploy_user=deploy_user,
        cancellation=cancellation,
        commit_log=commit_log,
    )


def generate_env_file(path: Path, data: InitData) -> None:
    """Write the .env file holding chat credentials."""
    secret_name = "SLACK_WEBHOOK_URL" if data.backend is ChatBackend.WEBHOOK else "SLACK_BOT_TOKEN"
    lines = [
        "# Deploy Notifier Configuration",
        "# Generated by deploy-notifier init",
        f"# {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        f"{secret_name}={data.secret}",
        "",
        "# Logging (optional)",
        "# Standard logging levels: DEBUG, INFO, WARNING, ERROR",
        "LOG_LEVEL=INFO",
        "",
        "# Name shown as the person deploying (optional, defaults to git user.name)",
        "# DEPLOY_NOTIFIER_USER=",
        "",
    ]
    path.write_text("\n".join(lines), encoding="utf-8")
    path.chmod(0o600)


def build_settings_document(data: InitData) -> Dict[str, Any]:
    return {
        "enabled": True,
        "deploy_user": data.deploy_user,
        "chat": {
            "backend": data.backend.value,
            "rooms": data.rooms,
        },
        "messages": {
            "success_color": "green",
            "failed_color": "red",
            "announce": False,
            "format": "text",
        },
        "commit_log": {
            "enabled": data.commit_log,
        },
        "cancellation": {
            "enabled": data.cancellation,
            "window": 180,
            "poll_interval": 10,
        },
    }


def generate_settings_yaml(path: Path, data: InitData) -> None:
    with path.open("w", encoding="utf-8") as f:
        yaml.dump(build_settings_document(data), f, default_flow_style=False, sort_keys=False)


def check_existing_config(target_dir: Path, force: bool) -> bool:
    """
    Check for existing config files and back them up before overwriting.

    Returns:
        True if we should proceed, False if the user declined to overwrite.
    """
    existing = [name for name in CONFIG_FILES if (target_dir / name).exists()]
    if not existing:
        return True

    if not force:
        print(f"\nConfiguration already exists in {target_dir}: {', '.join(existing)}")
        if not prompt_yes_no("Overwrite existing configuration?"):
            print("Initialization cancelled.")
            return False

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_dir = target_dir / f"backup_{timestamp}"
    backup_dir.mkdir(exist_ok=True)
    for name in existing:
        shutil.copy2(target_dir / name, backup_dir / name)
    print(f"Backed up existing files to: {backup_dir}")
    return True


def run_init_command(args) -> int:
    """
    Main entry point for the init command.

    Returns:
        Exit status code (0 for success, 1 for error)
    """
    target_dir = Path(args.config_dir).expanduser() if args.config_dir else DEFAULT_CONFIG_DIR

    if not check_existing_config(target_dir, force=args.force):
        return 0

    data = interactive_setup()

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        generate_env_file(target_dir / ENV_FILE_NAME, data)
        generate_settings_yaml(target_dir / SETTINGS_FILE, data)
    except OSError as exc:
        LOGGER.error("Failed to write configuration to %s: %s", target_dir, exc)
        return 1

    print(f"\nConfiguration written to {target_dir}")
    if target_dir != DEFAULT_CONFIG_DIR:
        print(f"Pass --config-dir {target_dir} or set {CONFIG_DIR_ENV} to use it.")
    return 0
