"""Input validation utilities for the deploy-notifier init command."""

from __future__ import annotations

import re

ROOM_PATTERN = re.compile(r"^(#[a-z0-9][a-z0-9._-]{0,79}|[CGD][A-Z0-9]{6,})$")


def validate_slack_bot_token(token: str) -> tuple[bool, str]:
    """Validate SLACK_BOT_TOKEN format (xoxb-*)."""
    if not token:
        return False, "Token is required"
    if not token.startswith("xoxb-"):
        return False, "Token must start with 'xoxb-'"
    if len(token) < 20:
        return False, "Token appears too short"
    return True, ""


def validate_webhook_url(url: str) -> tuple[bool, str]:
    """Validate a Slack incoming-webhook URL."""
    if not url:
        return False, "Webhook URL is required"
    if not url.startswith("https://hooks.slack.com/"):
        return False, "Webhook URL must start with 'https://hooks.slack.com/'"
    return True, ""


def validate_rooms(rooms: str) -> tuple[bool, str]:
    """Validate comma-separated rooms (#channel-name or channel ID)."""
    parts = [room.strip() for room in rooms.split(",") if room.strip()]
    if not parts:
        return False, "At least one room is required"

    for room in parts:
        if not ROOM_PATTERN.match(room):
            return False, f"Room '{room}' should be '#channel-name' or a channel ID like C0123456"
    return True, ""
