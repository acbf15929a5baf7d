"""Bounded-concurrency execution of async tasks with ordered results."""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

import anyio

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def process_batch(
    items: Sequence[T],
    func: Callable[[T], Awaitable[R]],
    concurrency: int = 5,
    batch_delay: float = 0.1,
    return_exceptions: bool = False,
) -> List[Any]:
    """
    Run ``func`` over ``items`` in consecutive batches of at most ``concurrency``.

    ``results[i]`` always belongs to ``items[i]`` whatever order the tasks
    finish in. With ``return_exceptions`` a failing task leaves its exception
    in its slot and the others keep running; otherwise the first failure
    cancels the rest of its batch and is re-raised.

    Args:
        items: Inputs to process.
        func: Coroutine function applied to each item.
        concurrency: Maximum number of tasks in flight.
        batch_delay: Seconds to wait between batches.
        return_exceptions: Collect failures instead of failing fast.

    Returns:
        One result (or exception) per input, in input order.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    results: List[Any] = [None] * len(items)
    failure: Optional[BaseException] = None
    started = time.perf_counter()
    batch_count = 0

    logger.debug(
        f"Starting batch processing: {len(items)} items, concurrency {concurrency}"
    )

    for offset in range(0, len(items), concurrency):
        batch_count += 1

        async with anyio.create_task_group() as task_group:

            async def run(index: int) -> None:
                nonlocal failure
                try:
                    results[index] = await func(items[index])
                except Exception as exc:
                    if return_exceptions:
                        results[index] = exc
                        return
                    if failure is None:
                        failure = exc
                    task_group.cancel_scope.cancel()

            for index in range(offset, min(offset + concurrency, len(items))):
                task_group.start_soon(run, index)

        if failure is not None:
            raise failure

        if offset + concurrency < len(items) and batch_delay > 0:
            await anyio.sleep(batch_delay)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        f"Batch processing completed: {len(items)} items in {batch_count} batches "
        f"({elapsed_ms} ms)"
    )
    return results
