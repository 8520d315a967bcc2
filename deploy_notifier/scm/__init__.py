"""Source-control helpers."""

from .commit_log import format_entries, parse_git_log, parse_svn_log, read_commit_log

__all__ = ["read_commit_log", "format_entries", "parse_git_log", "parse_svn_log"]
