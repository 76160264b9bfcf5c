"""
Fire-and-forget weekly limit checks submitted after an expense is written.
"""
import asyncio
import logging
from typing import Set

from service.budget_alerts import WeeklyLimitChecker

logger = logging.getLogger(__name__)


class LimitCheckQueue:
    def __init__(self, checker: WeeklyLimitChecker):
        self.checker = checker
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, user_id: int) -> asyncio.Task:
        """Schedule a limit check for ``user_id`` on the running loop and return at once."""
        task = asyncio.get_running_loop().create_task(self._run(user_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, user_id: int):
        try:
            result = await self.checker.check(user_id)
        except Exception as e:
            logger.error(f"Error checking weekly limit for user {user_id}: {str(e)}")
            return None
        logger.info(f"Weekly limit check for user {user_id}: {result.message}")
        return result

    async def drain(self):
        """Wait for every submitted check to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
