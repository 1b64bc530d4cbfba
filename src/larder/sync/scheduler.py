"""Scheduling boundary between the mutation path and the sync engine."""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Protocol, Set

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from larder.config import get_settings
from larder.models.sync import SyncOutcome
from larder.timeutils import utcnow

logger = logging.getLogger(__name__)

SyncRunner = Callable[[str], SyncOutcome]

_POLL_JOB_ID = "larder-sync-poll"


class SyncRequester(Protocol):
    """Anything that accepts fire-and-forget sync requests for a household."""

    def request_sync(self, household_id: str) -> None:
        ...


class NullScheduler:
    """Drop every request (local-only operation, or tests that sync explicitly)."""

    def __init__(self) -> None:
        self.requested: List[str] = []

    def request_sync(self, household_id: str) -> None:
        self.requested.append(household_id)


class ImmediateScheduler:
    """Run the pass synchronously on the caller's thread."""

    def __init__(self, runner: SyncRunner) -> None:
        self._runner = runner

    def request_sync(self, household_id: str) -> None:
        outcome = self._runner(household_id)
        if outcome is SyncOutcome.RETRY:
            logger.info("Sync for household %s needs a retry", household_id)


def _pick(value, default):
    return default if value is None else value


def backoff_delay(attempt: int, base: float, maximum: float) -> float:
    """Exponential backoff with full jitter for the given 1-based attempt."""

    ceiling = min(maximum, base * (2 ** max(0, attempt - 1)))
    return random.uniform(ceiling / 2, ceiling)


class SyncScheduler:
    """Bounded background scheduler for sync passes.

    Requests are deduplicated per household: while a pass is queued for a household,
    further requests are absorbed. ``RETRY`` outcomes are re-queued after an exponential
    backoff as one-shot jobs on the same APScheduler instance that runs the periodic loop
    over every household seen so far once ``start()`` is called.
    """

    def __init__(
        self,
        runner: SyncRunner,
        *,
        max_workers: Optional[int] = None,
        poll_interval: Optional[float] = None,
        backoff_base: Optional[float] = None,
        backoff_max: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._runner = runner
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.sync_max_workers,
            thread_name_prefix="larder-sync",
        )
        self._poll_interval = _pick(poll_interval, settings.sync_poll_interval)
        self._backoff_base = _pick(backoff_base, settings.sync_backoff_base)
        self._backoff_max = _pick(backoff_max, settings.sync_backoff_max)
        self._max_attempts = _pick(max_attempts, settings.sync_max_attempts)
        self._lock = threading.Lock()
        self._pending: Set[str] = set()
        self._attempts: Dict[str, int] = {}
        self._retries: Set[str] = set()
        self._households: Set[str] = set()
        self._jobs = BackgroundScheduler(daemon=True)
        self._shutdown = False

    def request_sync(self, household_id: str) -> None:
        """Queue a pass for the household unless one is already queued."""

        if not household_id:
            return
        with self._lock:
            if self._shutdown:
                logger.debug("Scheduler shut down; dropping sync request for %s", household_id)
                return
            self._households.add(household_id)
            self._cancel_retry(household_id)
            if household_id in self._pending:
                return
            self._pending.add(household_id)
        self._submit(household_id)

    def _submit(self, household_id: str) -> Optional[Future]:
        try:
            return self._executor.submit(self._run, household_id)
        except RuntimeError:
            logger.debug("Executor closed; dropping sync request for %s", household_id)
            with self._lock:
                self._pending.discard(household_id)
            return None

    def _run(self, household_id: str) -> SyncOutcome:
        with self._lock:
            self._pending.discard(household_id)
        try:
            outcome = self._runner(household_id)
        except Exception:
            logger.exception("Sync runner raised for household %s", household_id)
            outcome = SyncOutcome.RETRY
        if outcome is SyncOutcome.RETRY:
            self._schedule_retry(household_id)
        else:
            with self._lock:
                self._attempts.pop(household_id, None)
        return outcome

    def _ensure_running(self) -> None:
        if not self._jobs.running:
            self._jobs.start()

    def _cancel_retry(self, household_id: str) -> None:
        # Caller holds self._lock.
        if household_id not in self._retries:
            return
        self._retries.discard(household_id)
        try:
            self._jobs.remove_job(_retry_job_id(household_id))
        except JobLookupError:
            logger.debug("Retry for household %s already fired", household_id)

    def _schedule_retry(self, household_id: str) -> None:
        with self._lock:
            if self._shutdown:
                return
            attempt = self._attempts.get(household_id, 0) + 1
            if attempt > self._max_attempts:
                logger.warning(
                    "Giving up retries for household %s until the next trigger", household_id
                )
                self._attempts.pop(household_id, None)
                return
            self._attempts[household_id] = attempt
            delay = backoff_delay(attempt, self._backoff_base, self._backoff_max)
            self._jobs.add_job(
                self.request_sync,
                "date",
                run_date=utcnow() + timedelta(seconds=delay),
                args=[household_id],
                id=_retry_job_id(household_id),
                replace_existing=True,
                misfire_grace_time=None,
            )
            self._retries.add(household_id)
            self._ensure_running()
        logger.info(
            "Retrying sync for household %s in %.1fs (attempt %s)", household_id, delay, attempt
        )

    def pending(self) -> Set[str]:
        with self._lock:
            return set(self._pending)

    def retrying(self) -> Set[str]:
        """Households waiting on a backoff retry."""

        with self._lock:
            return set(self._retries)

    def poll_once(self) -> int:
        """Request a pass for every known household and return how many were requested."""

        with self._lock:
            households = sorted(self._households)
        for household_id in households:
            self.request_sync(household_id)
        return len(households)

    def register(self, household_id: str) -> None:
        """Include a household in the periodic loop without syncing it now."""

        with self._lock:
            self._households.add(household_id)

    def forget(self, household_id: str) -> None:
        with self._lock:
            self._households.discard(household_id)
            self._attempts.pop(household_id, None)
            self._cancel_retry(household_id)

    def start(self) -> None:
        """Run :meth:`poll_once` every ``poll_interval`` seconds in the background."""

        with self._lock:
            if self._shutdown:
                return
            if self._jobs.get_job(_POLL_JOB_ID) is not None:
                logger.debug("Sync scheduler already running")
                return
            logger.info("Starting sync scheduler poll_interval=%s", self._poll_interval)
            self._jobs.add_job(
                self.poll_once,
                "interval",
                seconds=self._poll_interval,
                id=_POLL_JOB_ID,
                max_instances=1,
                coalesce=True,
            )
            self._ensure_running()

    def stop(self) -> None:
        """Stop the periodic loop, drop pending retries, and wait for running passes."""

        logger.info("Stopping sync scheduler")
        with self._lock:
            self._shutdown = True
            self._retries.clear()
        if self._jobs.running:
            self._jobs.shutdown(wait=False)
        self._executor.shutdown(wait=True)


def _retry_job_id(household_id: str) -> str:
    return f"larder-sync-retry:{household_id}"


__all__ = [
    "ImmediateScheduler",
    "NullScheduler",
    "SyncRequester",
    "SyncScheduler",
    "backoff_delay",
]
