"""Error handling for LSP handlers.

A handler that raises would otherwise surface as a JSON-RPC error or, for
notifications, be lost in pygls' own logs. The decorators below log the
failure under the fluffls logger and hand back a fallback value instead.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")


def _none() -> None:
    return None


def wrap_handler(
    *,
    logger: logging.Logger,
    feature_name: str,
    default_factory: Callable[[], R] = _none,  # type: ignore[assignment]
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Log and absorb exceptions raised by a synchronous handler.

    Args:
        logger: Logger receiving the traceback.
        feature_name: LSP method or command name used in the log record.
        default_factory: Builds the value returned after a failure.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("Error in %s handler", feature_name)
                return default_factory()

        return wrapper

    return decorator


def wrap_async_handler(
    *,
    logger: logging.Logger,
    feature_name: str,
    default_factory: Callable[[], R] = _none,  # type: ignore[assignment]
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Async variant of ``wrap_handler``.

    ``asyncio.CancelledError`` is not absorbed so request cancellation and
    server shutdown still work.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error in %s handler", feature_name)
                return default_factory()

        return wrapper

    return decorator
