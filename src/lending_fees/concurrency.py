"""Structured fan-out for the fee pipeline's concurrent reads."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


async def gather_or_cancel(*coros: Coroutine[Any, Any, T]) -> list[T]:
    """Run coroutines concurrently and return their results in order.

    The coroutines run as tasks of one asyncio.TaskGroup: the first failure
    cancels every sibling still running, waits for them to finish, and is
    re-raised unwrapped so callers can catch FeeAdapterError subclasses
    directly.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except BaseExceptionGroup as eg:
        raise eg.exceptions[0] from None
    return [task.result() for task in tasks]
