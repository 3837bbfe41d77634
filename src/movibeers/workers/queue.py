"""Background task handoff.

Services enqueue by job name; the arq worker registers a function under the
same name. Tests run jobs inline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class TaskQueue(ABC):
    @abstractmethod
    async def enqueue(self, job: str, *args: Any) -> None:  # noqa: ANN401
        raise NotImplementedError


class ArqTaskQueue(TaskQueue):
    """Enqueue onto an arq Redis pool (``arq.create_pool``)."""

    def __init__(self, pool: Any) -> None:  # noqa: ANN401
        self.pool = pool

    async def enqueue(self, job: str, *args: Any) -> None:  # noqa: ANN401
        await self.pool.enqueue_job(job, *args)
        logger.info("Enqueued %s%r", job, args)


class InlineTaskQueue(TaskQueue):
    """Run the registered handler immediately, in the caller's task."""

    def __init__(self, handlers: dict[str, Callable[..., Awaitable[Any]]] | None = None) -> None:
        self.handlers = dict(handlers or {})
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def enqueue(self, job: str, *args: Any) -> None:  # noqa: ANN401
        self.calls.append((job, args))
        handler = self.handlers.get(job)
        if handler is None:
            logger.warning("No inline handler for %s; dropped", job)
            return
        await handler(*args)
