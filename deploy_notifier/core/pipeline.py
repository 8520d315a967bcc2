"""Minimal deployment task pipeline with before/after hooks and rollback."""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

LOGGER = logging.getLogger(__name__)

Callback = Callable[[], Union[Any, Awaitable[Any]]]


class Pipeline:
    """Runs named tasks, surrounding each with its registered hooks.

    The outermost :meth:`invoke` acts as a transaction: when any task or hook
    raises, rollback callbacks registered during the run execute newest first
    before the error propagates.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, Callback] = {}
        self._before: Dict[str, List[Callback]] = defaultdict(list)
        self._after: Dict[str, List[Callback]] = defaultdict(list)
        self._rollbacks: List[Callback] = []
        self._depth = 0

    def task(self, name: str, body: Optional[Callback] = None):
        """Register a task body, or use as ``@pipeline.task("deploy")``."""
        if body is not None:
            self._tasks[name] = body
            return body

        def decorator(func: Callback) -> Callback:
            self._tasks[name] = func
            return func

        return decorator

    def before(self, name: str, *callbacks: Callback) -> None:
        self._before[name].extend(callbacks)

    def after(self, name: str, *callbacks: Callback) -> None:
        self._after[name].extend(callbacks)

    def on_rollback(self, callback: Callback) -> None:
        if self._depth == 0:
            raise RuntimeError("on_rollback called outside a running pipeline")
        self._rollbacks.append(callback)

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    async def invoke(self, name: str) -> None:
        outermost = self._depth == 0
        if outermost:
            self._rollbacks = []
        self._depth += 1
        try:
            LOGGER.debug("Running task %s", name)
            for callback in self._before.get(name, ()):
                await _call(callback)
            body = self._tasks.get(name)
            if body is not None:
                await _call(body)
            for callback in self._after.get(name, ()):
                await _call(callback)
        except BaseException:
            if outermost:
                await self._rollback()
            raise
        finally:
            self._depth -= 1

    async def _rollback(self) -> None:
        rollbacks, self._rollbacks = self._rollbacks, []
        for callback in reversed(rollbacks):
            try:
                await _call(callback)
            except Exception:
                LOGGER.exception("Rollback step failed")


async def _call(callback: Callback) -> Any:
    result = callback()
    if inspect.isawaitable(result):
        return await result
    return result
