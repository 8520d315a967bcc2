"""Integration tests for the notifier hooks installed into a pipeline."""

from __future__ import annotations

import pytest

from deploy_notifier.core.errors import DeployCancelled
from deploy_notifier.core.hooks import DEPLOY, DEPLOY_MIGRATIONS, DEPLOY_UPDATE_CODE, install_hooks
from deploy_notifier.core.models import ChatMessage
from deploy_notifier.core.pipeline import Pipeline


def build_pipeline(notifier, update_code=None) -> Pipeline:
    pipeline = Pipeline()
    install_hooks(pipeline, notifier)
    pipeline.task(DEPLOY, lambda: pipeline.invoke(DEPLOY_UPDATE_CODE))
    pipeline.task(DEPLOY_MIGRATIONS, lambda: pipeline.invoke(DEPLOY_UPDATE_CODE))
    if update_code is not None:
        pipeline.task(DEPLOY_UPDATE_CODE, update_code)
    return pipeline


@pytest.mark.asyncio
async def test_deploy_posts_start_and_finish(notifier, chat_adapter):
    await build_pipeline(notifier).invoke(DEPLOY)

    print(f"\n OUTPUT: {chat_adapter.texts}")
    assert chat_adapter.texts == [
        "alice is deploying shop/main (revision 01234567) to production.",
        "alice finished deploying shop/main (revision 01234567) to production.",
    ]


@pytest.mark.asyncio
async def test_migrations_deploy_mentions_migrations(notifier, chat_adapter):
    await build_pipeline(notifier).invoke(DEPLOY_MIGRATIONS)

    assert len(chat_adapter.texts) == 2
    assert all(text.endswith("(with migrations).") for text in chat_adapter.texts)


@pytest.mark.asyncio
async def test_failed_update_code_posts_cancellation(notifier, chat_adapter):
    def update_code() -> None:
        raise RuntimeError("rsync failed")

    with pytest.raises(RuntimeError):
        await build_pipeline(notifier, update_code).invoke(DEPLOY)

    assert chat_adapter.texts[-1] == (
        "alice cancelled deployment of shop/main (revision 01234567) to production."
    )
    assert chat_adapter.messages[-1]["options"].color == "red"
    assert not any("finished deploying" in text for text in chat_adapter.texts)


@pytest.mark.asyncio
async def test_chat_cancellation_rolls_back(make_notifier, settings, context, chat_adapter, sleep):
    settings.give_opportunity_to_cancel = True
    settings.cancellation_window = 20
    chat_adapter.histories["#deploys"] = [ChatMessage(sender="U7", text="cancel deploy please")]
    updated: list[bool] = []
    notifier = make_notifier(settings, context)

    with pytest.raises(DeployCancelled):
        await build_pipeline(notifier, lambda: updated.append(True)).invoke(DEPLOY)

    assert updated == []
    assert chat_adapter.texts[-2] == "Cancelling deploy."
    assert chat_adapter.texts[-1].startswith("alice cancelled deployment of shop/main")


@pytest.mark.asyncio
async def test_dry_run_posts_nothing(make_notifier, settings, context, chat_adapter):
    context.dry_run = True
    notifier = make_notifier(settings, context)

    await build_pipeline(notifier).invoke(DEPLOY)

    assert chat_adapter.messages == []
