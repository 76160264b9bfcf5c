"""
Runs one action per active user and tallies the outcome.

A failure for one user (an exception or a FAILED result) is recorded in
the BatchOutcome and never stops the remaining users.
"""
import asyncio
from datetime import datetime, timezone
import logging
from typing import Awaitable, Callable, Iterable, Optional

from config.settings import settings
from schemas.notifications import ActionResult, BatchOutcome
from store.enums import ActionStatus

logger = logging.getLogger(__name__)

UserAction = Callable[[object], Awaitable[ActionResult]]
UserSource = Callable[[], Iterable[object]]


class BatchRunner:
    def __init__(
        self,
        user_source: UserSource,
        *,
        inter_user_delay: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.user_source = user_source
        self.inter_user_delay = (
            settings.INTER_USER_DELAY_SECONDS if inter_user_delay is None else inter_user_delay
        )
        self.max_concurrency = max(1, max_concurrency or settings.BATCH_MAX_CONCURRENCY)
        self._sleep = sleep

    async def run_for_each_active_user(
        self, action: UserAction, job_name: str = "batch"
    ) -> BatchOutcome:
        """
        Execute ``action(user)`` for every active user.

        Listing the users is the only step allowed to raise (DependencyError
        from the user iterator); everything after that is converted to data.
        """
        outcome = BatchOutcome(job_name=job_name, started_at=datetime.now(timezone.utc))
        users = list(self.user_source())
        logger.info(f"Found {len(users)} active users for {job_name}")

        if self.max_concurrency == 1 or len(users) <= 1:
            pause = False
            for user in users:
                if pause:
                    await self._sleep(self.inter_user_delay)
                pause = await self._run_one(action, user, outcome, job_name) and self.inter_user_delay > 0
        else:
            await self._run_pooled(action, users, outcome, job_name)

        outcome.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"{job_name} completed: {outcome.attempted} attempted, "
            f"{outcome.succeeded} succeeded ({outcome.skipped} skipped), "
            f"{outcome.failed} failed in {outcome.duration_seconds:.2f}s"
        )
        return outcome

    async def _run_pooled(self, action: UserAction, users: list, outcome: BatchOutcome, job_name: str):
        queue: asyncio.Queue = asyncio.Queue()
        for user in users:
            queue.put_nowait(user)

        async def worker():
            pause = False
            while True:
                try:
                    user = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                if pause:
                    await self._sleep(self.inter_user_delay)
                pause = await self._run_one(action, user, outcome, job_name) and self.inter_user_delay > 0

        workers = min(self.max_concurrency, len(users))
        await asyncio.gather(*(worker() for _ in range(workers)))

    async def _run_one(self, action: UserAction, user, outcome: BatchOutcome, job_name: str) -> bool:
        """Run one user's action; returns True when a send was attempted."""
        user_id = getattr(user, "id", None)
        try:
            result = await action(user)
        except Exception as exc:
            outcome.record_failure(user_id, f"{type(exc).__name__}: {exc}")
            logger.error(f"Error processing {job_name} for user {user_id}: {exc}")
            return True

        if result is None or result.status == ActionStatus.SENT:
            outcome.record_success()
        elif result.status == ActionStatus.SKIPPED:
            outcome.record_success(skipped=True)
            logger.info(f"Skipped {job_name} for user {user_id}: {result.detail}")
        else:
            outcome.record_failure(user_id, result.detail or "action failed")
            logger.error(f"Failed {job_name} for user {user_id}: {result.detail}")
        return result is None or result.status != ActionStatus.SKIPPED
