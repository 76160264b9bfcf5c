import asyncio
from contextlib import nullcontext
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from core.exceptions import DependencyError
from schemas.expenses import ExpenseSummary
from schemas.notifications import ExpenseAggregate, NotificationResult
from store.enums import ExpenseCategory
from utils.time_windows import ensure_utc

TZ = "America/New_York"


def make_user(user_id, *, weekly_limit=None, last_limit_alert=None, is_active=True):
    return SimpleNamespace(
        id=user_id,
        username=f"user{user_id}",
        email=f"user{user_id}@example.com",
        is_active=is_active,
        weekly_limit=None if weekly_limit is None else Decimal(str(weekly_limit)),
        last_limit_alert=last_limit_alert,
    )


class FakeUserRepository:
    def __init__(self, users=()):
        self.users = {user.id: user for user in users}
        self.alert_writes = []
        self.fail_writes = False

    def find_active_users(self):
        return [user for user in self.users.values() if user.is_active]

    def find_by_id(self, user_id):
        return self.users.get(user_id)

    def toggle_active_status(self, user_id, is_active):
        user = self.users.get(user_id)
        if user is not None:
            user.is_active = is_active
        return user

    def update_last_alert(self, user_id, instant, window):
        if self.fail_writes:
            raise DependencyError("database unavailable", operation="update_last_alert")
        user = self.users[user_id]
        current = ensure_utc(user.last_limit_alert)
        if current is not None and current >= window.start:
            return False
        user.last_limit_alert = instant
        self.alert_writes.append((user_id, instant))
        return True


class FakeExpenseRepository:
    def __init__(self):
        self.expenses = []
        self.failing_users = set()

    def add(self, user_id, amount, when, title="Lunch", category=ExpenseCategory.FOOD_AND_DINING):
        self.expenses.append(
            (user_id, ExpenseSummary(title=title, amount=Decimal(str(amount)), category=category, date=when))
        )

    def aggregate(self, user_id, window):
        if user_id in self.failing_users:
            raise DependencyError(f"aggregate failed for user {user_id}", operation="aggregate")
        items = [item for owner, item in self.expenses if owner == user_id and window.contains(item.date)]
        total = sum((item.amount for item in items), Decimal("0"))
        return ExpenseAggregate(total=total, count=len(items), items=items)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.failing_emails = set()

    async def _deliver(self, kind, user, **details):
        # yield so concurrent checks interleave
        await asyncio.sleep(0)
        if user.email in self.failing_emails:
            return NotificationResult(success=False, error="SMTP connection refused")
        self.sent.append(SimpleNamespace(kind=kind, email=user.email, **details))
        return NotificationResult(success=True, message_id=f"<{kind}-{len(self.sent)}@test>")

    async def send_daily_summary(self, user, expenses, total, day):
        return await self._deliver("daily", user, count=len(expenses), total=total, day=day)

    async def send_weekly_summary(self, user, expenses, total, limit, window):
        return await self._deliver("weekly", user, count=len(expenses), total=total, window=window)

    async def send_weekly_limit_alert(self, user, spent, limit):
        return await self._deliver("limit_alert", user, spent=spent, limit=limit)

    def sent_to(self, kind):
        return [message.email for message in self.sent if message.kind == kind]


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def expense_repo():
    return FakeExpenseRepository()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def repositories(user_repo, expense_repo):
    def _open():
        return nullcontext((user_repo, expense_repo))

    return _open


@pytest.fixture
def now():
    # Wednesday 2024-03-13 12:00 in New York
    return datetime(2024, 3, 13, 16, 0, tzinfo=timezone.utc)
