"""Utility functions for the cluster infrastructure layer.

Provides a helper for running async controller and orchestrator code
in sync contexts such as CLI commands.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any


def run_sync[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a blocking sync context.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Example:
        from stackport.infra.k8s import run_sync

        port = run_sync(orchestrator.create(deployment))
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop, create a new one
        return asyncio.run(coro)
    else:
        if loop.is_running():
            # Create a new loop in a thread to avoid blocking
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor() as pool:
                future = pool.submit(asyncio.run, coro)
                return future.result()
        return loop.run_until_complete(coro)
