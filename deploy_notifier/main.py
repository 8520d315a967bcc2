"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import subprocess
from pathlib import Path
from typing import Sequence

from .core import (
    ChatError,
    ConfigError,
    DeployCancelled,
    DeployCommandFailed,
    DeploymentContext,
    NotifierSettings,
    load_settings,
)
from .core.hooks import DEPLOY, DEPLOY_MIGRATIONS, DEPLOY_UPDATE_CODE, install_hooks
from .core.notifier import DeployNotifier
from .core.pipeline import Pipeline

LOGGER = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_CANCELLED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploy-notifier",
        description="Deploy Notifier - post deployment start/finish notices to chat rooms",
    )
    parser.add_argument(
        "--config-dir",
        help="Directory holding notifier.yaml and .env (default: ~/.deploy-notifier)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Deployment context shared by every notifying command
    context_parser = argparse.ArgumentParser(add_help=False)
    context_parser.add_argument("--application", required=True, help="Application being deployed")
    context_parser.add_argument("--branch", help="Branch being deployed")
    context_parser.add_argument("--revision", help="Revision being deployed (default: HEAD for git)")
    context_parser.add_argument("--previous-revision", help="Revision currently live")
    context_parser.add_argument("--latest-revision", help="Newest revision after the deploy")
    context_parser.add_argument("--stage", help="Deployment stage, e.g. staging")
    context_parser.add_argument("--env", dest="environment", help="Environment name (default: production)")
    context_parser.add_argument("--scm", default="git", help="Source control system: git or svn")
    context_parser.add_argument("--repo", default=".", help="Checkout used for scm commands")
    context_parser.add_argument("--dry-run", action="store_true", help="Do not post anything")
    context_parser.add_argument("--migrations", action="store_true", help="Deploy includes migrations")

    subparsers.add_parser(
        "init",
        help="Create notifier.yaml and .env interactively",
    ).add_argument("--force", action="store_true", help="Overwrite existing files (a backup is kept)")

    run_parser = subparsers.add_parser(
        "run",
        parents=[context_parser],
        help="Run a deploy command wrapped with start/finish notices",
    )
    run_parser.add_argument("deploy_command", nargs=argparse.REMAINDER, help="Command after --")

    subparsers.add_parser("start", parents=[context_parser], help="Announce a deploy is starting")
    subparsers.add_parser("finish", parents=[context_parser], help="Announce a deploy finished")
    subparsers.add_parser("rollback", parents=[context_parser], help="Announce a deploy was cancelled")
    return parser


def cli(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        from .commands import run_init_command

        return run_init_command(args)
    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = load_settings(args.config_dir)
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return EXIT_ERROR

    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.getLogger().setLevel(getattr(logging, log_level_name, logging.INFO))

    context = build_context(args)
    try:
        if args.command == "run":
            command = list(args.deploy_command)
            if command and command[0] == "--":
                command = command[1:]
            if not command:
                parser.error("run needs a deploy command after --")
            return asyncio.run(run_deploy(settings, context, command, args.migrations))
        return asyncio.run(run_hook(args.command, settings, context, args.migrations))
    except (ConfigError, ChatError) as exc:
        LOGGER.error("%s", exc)
        return EXIT_ERROR
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user")
        return 130


def build_context(args: argparse.Namespace) -> DeploymentContext:
    repo_path = Path(args.repo).expanduser().resolve()
    revision = args.revision
    if revision is None and args.scm == "git":
        revision = _git_head(repo_path)
    return DeploymentContext(
        application=args.application,
        branch=args.branch,
        revision=revision,
        previous_revision=args.previous_revision,
        latest_revision=args.latest_revision,
        stage=args.stage,
        environment=args.environment,
        scm=args.scm,
        repo_path=repo_path,
        dry_run=args.dry_run,
    )


async def run_deploy(
    settings: NotifierSettings,
    context: DeploymentContext,
    command: Sequence[str],
    migrations: bool = False,
    notifier: DeployNotifier | None = None,
) -> int:
    """Run ``command`` as the update-code step of a notifying deploy pipeline."""
    notifier = notifier or DeployNotifier(settings, context)
    pipeline = Pipeline()
    install_hooks(pipeline, notifier)

    async def update_code() -> None:
        LOGGER.info("Running deploy command: %s", " ".join(command))
        process = await asyncio.create_subprocess_exec(*command, cwd=str(context.repo_path))
        returncode = await process.wait()
        if returncode != 0:
            raise DeployCommandFailed(returncode)

    top_task = DEPLOY_MIGRATIONS if migrations else DEPLOY
    pipeline.task(DEPLOY_UPDATE_CODE, update_code)
    pipeline.task(top_task, lambda: pipeline.invoke(DEPLOY_UPDATE_CODE))

    try:
        await pipeline.invoke(top_task)
    except DeployCancelled:
        LOGGER.warning("Deploy cancelled from chat")
        return EXIT_CANCELLED
    except DeployCommandFailed as exc:
        LOGGER.error("%s", exc)
        return exc.returncode
    finally:
        await notifier.close()
    return 0


async def run_hook(
    hook: str,
    settings: NotifierSettings,
    context: DeploymentContext,
    migrations: bool = False,
    notifier: DeployNotifier | None = None,
) -> int:
    """Send a single lifecycle notice for deploy tools that call us per step."""
    notifier = notifier or DeployNotifier(settings, context)
    notifier.trigger_notification()
    if migrations:
        notifier.configure_for_migrations()

    try:
        if hook == "start":
            try:
                await notifier.notify_deploy_started()
            except DeployCancelled:
                await notifier.notify_deploy_cancelled()
                return EXIT_CANCELLED
        elif hook == "finish":
            await notifier.notify_deploy_finished()
        elif hook == "rollback":
            await notifier.notify_deploy_cancelled()
        else:
            raise ValueError(f"Unknown hook: {hook}")
    finally:
        await notifier.close()
    return 0


def _git_head(repo_path: Path) -> str | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(repo_path),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None
    if result.returncode != 0:
        LOGGER.debug("Could not resolve HEAD in %s: %s", repo_path, result.stderr.strip())
        return None
    return result.stdout.strip() or None


if __name__ == "__main__":
    raise SystemExit(cli())
