from pydantic import BaseModel, validator
from datetime import datetime
from decimal import Decimal
from typing import Optional
from store.enums import ExpenseCategory


class ExpenseCreate(BaseModel):
    title: str
    amount: Decimal
    category: ExpenseCategory
    date: Optional[datetime] = None  # defaults to now
    note: Optional[str] = None

    @validator("title")
    def validate_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Expense title is required")
        if len(v) > 100:
            raise ValueError("Title cannot exceed 100 characters")
        return v

    @validator("amount")
    def validate_amount(cls, v):
        if v < Decimal("0.01"):
            raise ValueError("Amount must be greater than 0")
        return v

    @validator("note")
    def validate_note(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) > 500:
            raise ValueError("Note cannot exceed 500 characters")
        return v


class ExpenseResponse(BaseModel):
    id: int
    user_id: int
    title: str
    amount: Decimal
    category: ExpenseCategory
    note: Optional[str]
    date: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseSummary(BaseModel):
    """The slice of an expense that notification emails render."""
    title: str
    amount: Decimal
    category: ExpenseCategory
    note: Optional[str] = None
    date: datetime

    class Config:
        from_attributes = True


class WeeklyLimitUpdate(BaseModel):
    weekly_limit: Decimal

    @validator("weekly_limit")
    def validate_weekly_limit(cls, v):
        if v < 0:
            raise ValueError("Weekly limit must be a positive number")
        return v
