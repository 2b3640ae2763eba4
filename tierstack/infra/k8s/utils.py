"""Utility functions for the Kubernetes infrastructure layer.

Provides helper functions for running async code in sync contexts and
for turning CLI durations into process timeouts.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import re
from collections.abc import Coroutine
from typing import Any, TypeVar

# Conventional exit status for a command killed by a timeout
TIMEOUT_RETURNCODE = 124

# Seconds added on top of a CLI's own --timeout before the process is killed
PROCESS_TIMEOUT_GRACE = 60

_DURATION_PART = re.compile(r"(\d+)([hms])")

T = TypeVar("T")


def duration_seconds(value: str) -> int:
    """Convert a Go-style duration ("5m", "1h30m", "120s") to seconds."""
    parts = _DURATION_PART.findall(value)
    if not parts or "".join(n + u for n, u in parts) != value:
        raise ValueError(f"Invalid duration: {value!r}")
    scale = {"h": 3600, "m": 60, "s": 1}
    return sum(int(n) * scale[u] for n, u in parts)


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a blocking sync context.

    This is useful for calling async KubernetesController methods
    from synchronous CLI commands and from tier worker threads.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Example:
        from tierstack.infra.k8s import KubectlController, run_sync

        controller = KubectlController()
        pods = run_sync(controller.get_pods("falco"))
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop in this thread, create a new one
        return asyncio.run(coro)

    # We're inside an async context; run on a fresh loop in a helper thread
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(asyncio.run, coro)
        return future.result()
