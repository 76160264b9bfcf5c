from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime
from sqlalchemy.orm import relationship
from database.postgres import Base
from models.audit import AuditMixin


class User(AuditMixin, Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String, unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    weekly_limit = Column(Numeric(12, 2), nullable=True)  # 0 or NULL disables alerts
    last_limit_alert = Column(DateTime(timezone=True), nullable=True)  # stored in UTC
    expenses = relationship("Expense", back_populates="user", cascade="all, delete")

    @property
    def has_weekly_limit(self) -> bool:
        return self.weekly_limit is not None and self.weekly_limit > 0
