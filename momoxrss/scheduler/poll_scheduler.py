"""
MomoXRSS Poll Scheduler
=======================

Ticks on a fixed cadence, picks the subscriptions whose interval has
elapsed and checks them concurrently.

Last-check times are kept in memory only, so after a restart every
subscription is due on the first tick.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from ..config.settings import SchedulerSettings, get_settings
from ..database.models import FeedSubscription
from ..processing.feed_checker import CheckResult, FeedChecker
from ..storage.subscription_repository import SubscriptionRepository
from ..utils.logging import PerformanceLogger, get_logger_for_component
from ..utils.validators import IntervalValidator


@dataclass
class TickResult:
    """Summary of one scheduler tick."""

    due: int = 0
    delivered: int = 0
    failed: int = 0
    results: List[CheckResult] = field(default_factory=list)


class PollScheduler:
    """Single-process polling loop."""

    def __init__(
        self,
        repository: SubscriptionRepository,
        checker: FeedChecker,
        settings: Optional[SchedulerSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize scheduler.

        Args:
            repository: Subscription store
            checker: Runs one check per due subscription
            settings: Scheduler settings (default from config)
            clock: Seconds source, injectable for tests
        """
        self.repository = repository
        self.checker = checker
        self.settings = settings or get_settings().scheduler
        self.clock = clock
        self.logger = get_logger_for_component("scheduler")

        self._last_checked: Dict[Tuple[str, str], float] = {}
        self._loop_task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()

    def _now_ms(self) -> float:
        return self.clock() * 1000

    def select_due(
        self, subscriptions: List[FeedSubscription], now_ms: Optional[float] = None
    ) -> List[FeedSubscription]:
        """Return due subscriptions and mark them as checked at ``now_ms``."""
        now_ms = self._now_ms() if now_ms is None else now_ms
        due = []

        for subscription in subscriptions:
            interval = IntervalValidator.effective(
                subscription.interval_ms, self.settings.default_interval_ms
            )
            last = self._last_checked.get(subscription.key)
            if last is None or now_ms - last >= interval:
                self._last_checked[subscription.key] = now_ms
                due.append(subscription)

        # Forget subscriptions that are gone or inactive
        live_keys = {subscription.key for subscription in subscriptions}
        for key in list(self._last_checked):
            if key not in live_keys:
                del self._last_checked[key]

        return due

    async def tick(self) -> TickResult:
        """Run one scheduling pass and wait for every check to settle.

        Never raises: store failures and check failures are logged.
        """
        result = TickResult()

        try:
            subscriptions = self.repository.find_all_active()
        except Exception as e:
            self.logger.error(
                f"Tick skipped, could not load subscriptions: {e}", exc_info=True
            )
            return result

        due = self.select_due(subscriptions)
        result.due = len(due)
        if not due:
            return result

        with PerformanceLogger(self.logger, "scheduler tick", due=len(due)):
            outcomes = await asyncio.gather(
                *(self.checker.check(subscription) for subscription in due),
                return_exceptions=True,
            )

        for subscription, outcome in zip(due, outcomes):
            if isinstance(outcome, BaseException):
                result.failed += 1
                self.logger.error(
                    f"Check crashed for {subscription.url} -> {subscription.target}: {outcome!r}",
                    exc_info=outcome,
                )
                continue

            result.results.append(outcome)
            if outcome.delivered:
                result.delivered += 1
            if not outcome.success:
                result.failed += 1

        return result

    async def run_forever(self) -> None:
        """Launch a tick every ``tick_seconds`` without waiting for the previous one."""
        self.logger.info(f"Poll scheduler started (tick every {self.settings.tick_seconds:g}s)")

        while True:
            task = asyncio.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)
            await asyncio.sleep(self.settings.tick_seconds)

    def start(self) -> asyncio.Task:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self.run_forever())
        return self._loop_task

    async def stop(self) -> None:
        """Stop the loop and cancel ticks still in flight."""
        tasks = list(self._tick_tasks)
        if self._loop_task is not None:
            tasks.append(self._loop_task)

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._loop_task = None
        self._tick_tasks.clear()
        self.logger.info("Poll scheduler stopped")
