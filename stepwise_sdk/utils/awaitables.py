"""Helpers for user callbacks that may be plain functions or coroutines."""

import inspect
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged.

    Args:
        value: Return value of a user supplied callable

    Returns:
        The resolved value
    """
    if inspect.isawaitable(value):
        return await value
    return value
