"""Best-effort background side effects.

Hey future me - some work must NEVER block or fail a user action: registering the push
token after login, resetting navigation after logout. A bare create_task() with a log
line in its except is impossible to test and easy to lose. Here every such job is a
named asyncio task whose outcome is RECORDED as a SideEffectResult. Production ignores
the records (failures are already logged); tests await drain() and assert on them.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class SideEffectResult:
    """Outcome of one best-effort job."""

    name: str
    success: bool
    value: Any = None
    error: str | None = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class BestEffortTaskRunner:
    """Runs named background jobs whose failures are logged and recorded, never raised."""

    def __init__(self, history_size: int = 100) -> None:
        """Initialize the runner.

        Args:
            history_size: How many finished results to keep (oldest dropped first)
        """
        self._pending: set[asyncio.Task[None]] = set()
        self._results: deque[SideEffectResult] = deque(maxlen=history_size)

    # Hey future me - pass a FACTORY (async def / lambda returning a coroutine), not a
    # coroutine object. A coroutine created but never scheduled spits "was never awaited"
    # warnings; the factory is only called inside the task.
    def schedule(
        self, name: str, job: Callable[[], Awaitable[Any]]
    ) -> asyncio.Task[None]:
        """Start a job in the background. Must be called from a running event loop."""
        task = asyncio.create_task(self._run(name, job), name=f"side-effect:{name}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug("Scheduled side effect %s", name)
        return task

    async def _run(self, name: str, job: Callable[[], Awaitable[Any]]) -> None:
        try:
            value = await job()
        except asyncio.CancelledError:
            self._results.append(SideEffectResult(name=name, success=False, error="cancelled"))
            raise
        except Exception as e:
            logger.warning("Side effect %s failed: %s", name, e, exc_info=True)
            self._results.append(SideEffectResult(name=name, success=False, error=str(e)))
        else:
            self._results.append(SideEffectResult(name=name, success=True, value=value))

    @property
    def results(self) -> list[SideEffectResult]:
        """Finished jobs, oldest first."""
        return list(self._results)

    @property
    def pending_count(self) -> int:
        """Number of jobs still running."""
        return len(self._pending)

    def failures(self) -> list[SideEffectResult]:
        """Finished jobs that failed."""
        return [result for result in self._results if not result.success]

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for all currently scheduled jobs (including ones they schedule)."""
        while self._pending:
            pending = list(self._pending)
            await asyncio.wait_for(
                asyncio.gather(*pending, return_exceptions=True), timeout=timeout
            )

    async def cancel_all(self) -> None:
        """Cancel everything still running (shutdown)."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
