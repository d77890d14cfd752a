from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

from fastapi.concurrency import run_in_threadpool

from ..errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_store(
    func: Callable[..., T],
    *args: Any,
    operation: str,
    path: str,
    timeout: float,
) -> T:
    """Run a blocking store call in the threadpool, bounded by ``timeout``.

    Every failure (including the timeout) is re-raised as StorageError.
    On timeout the worker thread may still finish the write later.
    """
    try:
        return await asyncio.wait_for(run_in_threadpool(func, *args), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("[STORE] %s on '%s' timed out after %.1fs", operation, path, timeout)
        raise StorageError(operation, path, e) from e
    except StorageError:
        raise
    except Exception as e:
        logger.exception("[STORE] %s on '%s' failed", operation, path)
        raise StorageError(operation, path, e) from e
