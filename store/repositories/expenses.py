"""
Repository for expenses and their time-window aggregates.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.expenses import Expense
from schemas.expenses import ExpenseSummary
from schemas.notifications import ExpenseAggregate, TimeWindow
from store.enums import ExpenseCategory
from store.repositories.base import BaseRepository
from utils.time_windows import resolve_timezone


class ExpenseRepository(BaseRepository[Expense]):
    """Repository for managing expense entries."""

    def __init__(self, db: Session):
        super().__init__(Expense, db)

    def find_in_window(self, user_id: int, window: TimeWindow) -> List[Expense]:
        """Expenses dated inside [window.start, window.end], newest first."""
        start = window.start.astimezone(timezone.utc)
        end = window.end.astimezone(timezone.utc)
        try:
            return (
                self.db.query(Expense)
                .filter(
                    Expense.user_id == user_id,
                    Expense.date >= start,
                    Expense.date <= end,
                )
                .order_by(Expense.date.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            raise self._fail("find_in_window", exc) from exc

    def aggregate(self, user_id: int, window: TimeWindow) -> ExpenseAggregate:
        expenses = self.find_in_window(user_id, window)
        items = [ExpenseSummary.model_validate(expense) for expense in expenses]
        total = sum((Decimal(item.amount) for item in items), Decimal("0"))
        return ExpenseAggregate(total=total, count=len(items), items=items)

    def create_expense(
        self,
        *,
        user_id: int,
        title: str,
        amount: Decimal,
        category: ExpenseCategory,
        date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Expense:
        when = date or datetime.now(timezone.utc)
        if when.tzinfo is None:
            # naive input is wall-clock time in the reference timezone
            when = when.replace(tzinfo=resolve_timezone())
        when = when.astimezone(timezone.utc)
        expense = self.create(
            {
                "user_id": user_id,
                "title": title,
                "amount": amount,
                "category": category,
                "date": when,
                "note": note,
            }
        )
        self.commit()
        return expense
