"""Intra-tier task scheduling.

Tools inside a tier form chains along their ``depends_on`` edges. Chains
are independent of each other and run on a bounded worker pool; the tools
of one chain run one after another in a single worker. ``run()`` is the
tier barrier: it returns only once every tool has a terminal outcome.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from loguru import logger

from .base import InstallOutcome, InstallStatus, ToolDescriptor

ToolTask = Callable[[ToolDescriptor], InstallOutcome]


def build_chains(tools: Sequence[ToolDescriptor]) -> list[list[ToolDescriptor]]:
    """Group tools into sequential chains.

    Each chain starts at a tool without a predecessor and continues through
    its dependents in declared order.

    Raises:
        ValueError: A predecessor is not part of the same tier, or the
            dependency edges form a cycle
    """
    by_name = {tool.name: tool for tool in tools}
    dependents: dict[str, list[ToolDescriptor]] = {tool.name: [] for tool in tools}

    for tool in tools:
        if tool.depends_on is None:
            continue
        if tool.depends_on not in by_name:
            raise ValueError(
                f"{tool.name} depends on unknown tool {tool.depends_on!r}"
            )
        dependents[tool.depends_on].append(tool)

    chains: list[list[ToolDescriptor]] = []
    placed: set[str] = set()
    for root in (t for t in tools if t.depends_on is None):
        chain: list[ToolDescriptor] = []
        pending = [root]
        while pending:
            tool = pending.pop(0)
            chain.append(tool)
            placed.add(tool.name)
            pending.extend(dependents[tool.name])
        chains.append(chain)

    unplaced = [tool.name for tool in tools if tool.name not in placed]
    if unplaced:
        raise ValueError(f"Dependency cycle between: {', '.join(unplaced)}")
    return chains


class TierScheduler:
    """Runs one tier's tool tasks with bounded concurrency.

    Outcomes come back as values in declared order; nothing is shared
    between workers. A failed tool never stops its chain: dependents are
    still attempted so every problem surfaces in one run.

    Retries are off by default. With ``retries=N`` a failed tool is
    attempted up to N more times, waiting ``backoff_seconds * attempt``
    between attempts.
    """

    def __init__(
        self,
        max_workers: int = 4,
        retries: int = 0,
        backoff_seconds: float = 10,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if retries < 0:
            raise ValueError("retries must not be negative")
        self.max_workers = max_workers
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def run(self, tools: Sequence[ToolDescriptor], task: ToolTask) -> list[InstallOutcome]:
        """Run ``task`` for every tool and wait for all of them.

        Args:
            tools: Tool descriptors in declared order
            task: Installs one tool and returns its outcome

        Returns:
            One terminal outcome per tool, in declared order
        """
        if not tools:
            return []

        chains = build_chains(tools)
        workers = min(self.max_workers, len(chains))
        logger.debug(
            f"Scheduling {len(tools)} tool(s) as {len(chains)} chain(s) "
            f"on {workers} worker(s)"
        )

        results: dict[str, InstallOutcome] = {}
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tier") as pool:
            futures = [pool.submit(self._run_chain, chain, task) for chain in chains]
            for future in futures:
                for outcome in future.result():
                    results[outcome.tool] = outcome

        return [results[tool.name] for tool in tools]

    def _run_chain(
        self, chain: list[ToolDescriptor], task: ToolTask
    ) -> list[InstallOutcome]:
        return [self._attempt(tool, task) for tool in chain]

    def _attempt(self, tool: ToolDescriptor, task: ToolTask) -> InstallOutcome:
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = task(tool)
            except Exception as e:
                logger.exception(f"Install task for {tool.name} raised")
                outcome = InstallOutcome(
                    tool=tool.name,
                    status=InstallStatus.FAILED,
                    detail=str(e) or type(e).__name__,
                    namespace=tool.namespace,
                )

            if outcome.status is not InstallStatus.FAILED or attempt > self.retries:
                return replace(outcome, tool=tool.name, attempts=attempt)

            delay = self.backoff_seconds * attempt
            logger.warning(
                f"{tool.name} failed (attempt {attempt}/{self.retries + 1}); "
                f"retrying in {delay:g}s"
            )
            self._sleep(delay)
