"""Domain models for Deploy Notifier."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class MessageFormat(str, Enum):
    TEXT = "text"
    HTML = "html"


class ChatBackend(str, Enum):
    SLACK = "slack"
    WEBHOOK = "webhook"


@dataclass
class DeploymentContext:
    """Deployment tool state the notifier reads from."""

    application: str
    branch: Optional[str] = None
    revision: Optional[str] = None
    previous_revision: Optional[str] = None
    latest_revision: Optional[str] = None
    stage: Optional[str] = None
    environment: Optional[str] = None
    scm: str = "git"
    repo_path: Path = field(default_factory=Path.cwd)
    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.latest_revision is None:
            self.latest_revision = self.revision


@dataclass(frozen=True)
class SendOptions:
    message_format: MessageFormat = MessageFormat.HTML
    notify: bool = False
    color: Optional[str] = None

    def merge(self, **changes: Any) -> "SendOptions":
        return replace(self, **changes)


@dataclass
class ChatMessage:
    sender: str
    text: str
    ts: Optional[str] = None


@dataclass
class CommitLogEntry:
    revision: str
    time: Optional[datetime]
    user: str
    message: str


@dataclass
class NotifierSettings:
    enabled: bool = True
    backend: ChatBackend = ChatBackend.SLACK
    rooms: List[str] = field(default_factory=list)
    client_options: Dict[str, Any] = field(default_factory=dict)
    deploy_user: str = "Deploy"
    human: Optional[str] = None
    env: Optional[str] = None
    color: Optional[str] = None
    success_color: str = "green"
    failed_color: str = "red"
    announce: bool = False
    message_format: MessageFormat = MessageFormat.HTML
    revision_format: str = "(revision {revision})"
    commit_log: bool = False
    commit_log_format: str = ":time :user\n:message\n"
    commit_log_time_format: str = "%Y/%m/%d %H:%M:%S"
    commit_log_message_pattern: Optional[str] = None
    give_opportunity_to_cancel: bool = False
    cancellation_window: int = 180
    # Chat APIs are rate limited and several branches may deploy with the
    # same token at once, so history is polled sparingly.
    poll_interval: int = 10
