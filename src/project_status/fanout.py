"""Concurrent fan-out over a named set of independent lookups.

``resolve_all`` takes a mapping of name -> zero-argument async producer,
runs every producer concurrently on the current event loop and returns a
mapping with the same keys once they have all settled.

Failure policy is fail-fast: the first producer to raise cancels its
still-running siblings and the batch raises ``SourceUnavailable`` for
that producer's name. A partially-filled mapping is never returned, so
callers can read every selected key unconditionally.

Producers must not depend on each other's results. Anything that needs
a value from the batch runs after it (see engine.fetch_project_sources).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from project_status.errors import SourceUnavailable
from project_status.logging_config import get_logger

logger = get_logger(__name__)

Producer = Callable[[], Awaitable[Any]]


async def _settle(name: str, producer: Producer, project_id: str | None) -> Any:
    try:
        return await producer()
    except SourceUnavailable:
        raise
    except Exception as exc:
        raise SourceUnavailable(name, project_id, detail=str(exc) or type(exc).__name__) from exc


async def resolve_all(
    tasks: Mapping[str, Producer],
    project_id: str | None = None,
) -> dict[str, Any]:
    """Run all producers concurrently and return their results by name.

    Args:
        tasks: Mapping of task name to a zero-argument async callable
        project_id: Project being built, attached to any failure

    Returns:
        Dict with exactly the keys of ``tasks`` mapped to resolved values

    Raises:
        SourceUnavailable: If any producer fails (the first failure wins)
    """
    if not tasks:
        return {}

    running = {
        name: asyncio.create_task(_settle(name, producer, project_id))
        for name, producer in tasks.items()
    }
    logger.debug("fanout_started", project=project_id, tasks=sorted(running))

    try:
        values = await asyncio.gather(*running.values())
    except SourceUnavailable as exc:
        for task in running.values():
            task.cancel()
        # wait for cancelled siblings to unwind before reporting
        await asyncio.gather(*running.values(), return_exceptions=True)
        logger.warning(
            "source_failed",
            project=project_id,
            source=exc.source,
            error=exc.detail,
        )
        raise

    return dict(zip(running, values))
