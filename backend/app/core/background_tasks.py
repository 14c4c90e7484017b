"""
Safe background task wrapper for consistent exception handling.

Starlette background task exceptions behave differently depending on the
middleware stack: with middleware present they are swallowed, without it
(e.g., in TestClient) they crash the ASGI lifecycle. Wrapping every task
makes both environments log and continue.

Usage with FastAPI BackgroundTasks::

    background_tasks.add_task(
        safe_background_task,
        evaluate_response,
        request,
        session_factory,
        client,
    )
"""

import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def safe_background_task(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    **kwargs: Any,
) -> None:
    """Await ``func(*args, **kwargs)`` and log any exception it raises.

    No retries are attempted; background tasks are fire-and-forget.
    """
    name = getattr(func, "__name__", repr(func))
    try:
        await func(*args, **kwargs)
    except Exception:
        logger.exception("Background task '%s' failed", name)
