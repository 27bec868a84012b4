"""Utility functions for the Kubernetes infrastructure layer.

Provides the bridge between the async controller and the synchronous
lifecycle code that drives it.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a blocking sync context.

    The sequencer, prober and teardown coordinator are synchronous; they
    reach the async KubernetesController through this helper.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Example:
        from src.infra.k8s import KubectlController, run_sync

        controller = KubectlController()
        exists = run_sync(controller.namespace_exists("grimoirelab"))
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop, create a new one
        return asyncio.run(coro)

    # Inside a running loop: run on a fresh loop in a worker thread
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(asyncio.run, coro)
        return future.result()
