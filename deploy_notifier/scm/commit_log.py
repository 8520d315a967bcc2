"""Commit log retrieval and formatting for git and svn checkouts."""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.errors import ScmError
from ..core.models import CommitLogEntry, DeploymentContext, NotifierSettings

LOGGER = logging.getLogger(__name__)

GIT_FIELD_SEPARATOR = "$$"
GIT_PRETTY_FORMAT = f"--pretty=format:%H{GIT_FIELD_SEPARATOR}%at{GIT_FIELD_SEPARATOR}%an{GIT_FIELD_SEPARATOR}%s"

SVN_ENTRY = re.compile(
    r"^-+\n\s*(?P<revision>[^|]+?)\s+\|\s+(?P<user>[^|]+?)\s+\|\s+(?P<time>[^|]+?)\s+\|[^\n]*\n+"
    r"^\s*(?!-+$)(?P<message>[^\n]*?)\s*$",
    re.MULTILINE,
)
SVN_TIME = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4}")

PLACEHOLDERS = ("revision", "time", "user", "message")


async def read_commit_log(context: DeploymentContext, settings: NotifierSettings) -> List[str]:
    """Return formatted log lines between the previous and latest revision."""
    entries = await read_entries(context)
    return format_entries(entries, settings)


async def read_entries(context: DeploymentContext) -> List[CommitLogEntry]:
    scm = (context.scm or "").lower()
    start = context.previous_revision
    end = context.latest_revision

    if scm == "git":
        if not start and not end:
            LOGGER.debug("No revisions known; skipping git log")
            return []
        output = await _run_scm(
            context.repo_path,
            ["git", "log", "--no-merges", GIT_PRETTY_FORMAT, f"{start or ''}..{end or ''}"],
        )
        return parse_git_log(output)
    if scm == "svn":
        output = await _run_scm(
            context.repo_path,
            ["svn", "log", "--non-interactive", "-r", f"{start or 'BASE'}:{end or 'HEAD'}"],
        )
        return parse_svn_log(output)

    LOGGER.warning("Commit logs are not supported for scm %r", context.scm)
    return []


def parse_git_log(output: str) -> List[CommitLogEntry]:
    entries = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split(GIT_FIELD_SEPARATOR, 3)
        if len(parts) != 4:
            LOGGER.debug("Skipping unparseable git log line: %s", line)
            continue
        revision, timestamp, user, message = parts
        try:
            time: Optional[datetime] = datetime.fromtimestamp(int(timestamp))
        except ValueError:
            time = None
        entries.append(CommitLogEntry(revision=revision, time=time, user=user, message=message))
    return entries


def parse_svn_log(output: str) -> List[CommitLogEntry]:
    entries = []
    for match in SVN_ENTRY.finditer(output):
        entries.append(
            CommitLogEntry(
                revision=match.group("revision"),
                time=_parse_svn_time(match.group("time")),
                user=match.group("user"),
                message=match.group("message"),
            )
        )
    return entries


def format_entries(entries: Sequence[CommitLogEntry], settings: NotifierSettings) -> List[str]:
    """Render entries with the configured template, time format and message filter."""
    pattern = re.compile(settings.commit_log_message_pattern) if settings.commit_log_message_pattern else None
    lines = []
    for entry in entries:
        message = entry.message
        if pattern is not None:
            match = pattern.search(message)
            message = match.group(0) if match else ""
        time = entry.time.astimezone().strftime(settings.commit_log_time_format) if entry.time else ""

        values = {"revision": entry.revision, "time": time, "user": entry.user, "message": message}
        line = settings.commit_log_format
        for key in PLACEHOLDERS:
            line = line.replace(f":{key}", values[key])
        lines.append(line)
    return lines


def _parse_svn_time(raw: str) -> Optional[datetime]:
    match = SVN_TIME.search(raw)
    if not match:
        return None
    return datetime.strptime(match.group(0), "%Y-%m-%d %H:%M:%S %z")


async def _run_scm(cwd: Path, args: list[str]) -> str:
    def _execute() -> subprocess.CompletedProcess:
        return subprocess.run(
            args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=True,
        )

    try:
        result = await asyncio.to_thread(_execute)
    except FileNotFoundError as exc:
        raise ScmError(f"{args[0]} is not installed") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or str(exc)).strip()
        raise ScmError(f"{args[0]} log failed: {detail}") from exc
    return result.stdout
