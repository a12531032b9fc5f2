"""Reconnection policy adapter."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from .events import CloseEvent

ReconnectPolicy = Callable[[CloseEvent], bool | Awaitable[bool]]


def always_reconnect(event: CloseEvent) -> bool:
    """Default policy: approve every reconnection."""
    return True


def resolve_policy(
    policy: ReconnectPolicy,
    event: CloseEvent,
    loop: asyncio.AbstractEventLoop,
) -> asyncio.Future[bool]:
    """Run ``policy`` and return its decision as a future.

    A synchronous result resolves the future immediately; an awaitable is
    wrapped so callers never branch on the result shape. A policy raising
    synchronously yields a future carrying that exception.
    """
    try:
        result = policy(event)
    except Exception as err:
        future: asyncio.Future[bool] = loop.create_future()
        future.set_exception(err)
        return future

    if inspect.isawaitable(result):
        return asyncio.ensure_future(result, loop=loop)

    future = loop.create_future()
    future.set_result(bool(result))
    return future
