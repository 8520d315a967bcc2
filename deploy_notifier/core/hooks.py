"""Wires the notifier into the deploy pipeline."""

from __future__ import annotations

from .notifier import DeployNotifier
from .pipeline import Pipeline

DEPLOY = "deploy"
DEPLOY_MIGRATIONS = "deploy:migrations"
DEPLOY_UPDATE_CODE = "deploy:update_code"


def install_hooks(pipeline: Pipeline, notifier: DeployNotifier) -> None:
    async def notify_started() -> None:
        if notifier.send_notification:
            pipeline.on_rollback(notifier.notify_deploy_cancelled)
        await notifier.notify_deploy_started()

    pipeline.before(DEPLOY, notifier.trigger_notification)
    pipeline.before(DEPLOY_MIGRATIONS, notifier.trigger_notification, notifier.configure_for_migrations)
    pipeline.before(DEPLOY_UPDATE_CODE, notify_started)
    pipeline.after(DEPLOY, notifier.notify_deploy_finished)
    pipeline.after(DEPLOY_MIGRATIONS, notifier.notify_deploy_finished)
