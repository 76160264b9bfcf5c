from sqlalchemy import Column, Integer, String, Enum, Numeric, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from database.postgres import Base
from models.audit import AuditMixin
from store.enums import ExpenseCategory


class Expense(AuditMixin, Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(
        Enum(
            ExpenseCategory,
            name="expense_category",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    note = Column(String(500), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)  # stored in UTC
    user = relationship("User", back_populates="expenses")

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
    )
