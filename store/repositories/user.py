"""
User repository: the active-user iterator and the alert-marker write.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.user import User
from schemas.notifications import TimeWindow
from store.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model"""

    def __init__(self, db: Session):
        super().__init__(User, db)

    def find_active_users(self) -> List[User]:
        """Users eligible for batch notifications at call time."""
        try:
            return self.db.query(User).filter(User.is_active.is_(True)).all()
        except SQLAlchemyError as exc:
            raise self._fail("find_active_users", exc) from exc

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.get_by_id(user_id)

    def update_last_alert(self, user_id: int, instant: datetime, window: TimeWindow) -> bool:
        """
        Claim the weekly alert marker for ``user_id``.

        The row is only updated when no alert has been recorded inside
        ``window`` yet, so two racing writers cannot both succeed. Returns
        True when this call set the marker.
        """
        instant = instant.astimezone(timezone.utc)
        window_start = window.start.astimezone(timezone.utc)
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                or_(User.last_limit_alert.is_(None), User.last_limit_alert < window_start),
            )
            .values(last_limit_alert=instant, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update_last_alert", exc) from exc
        return result.rowcount == 1

    def set_weekly_limit(self, user_id: int, weekly_limit: Decimal) -> Optional[User]:
        """Set or clear (0) the user's weekly spending limit."""
        user = self.update(user_id, {"weekly_limit": weekly_limit})
        if user is not None:
            self.commit()
        return user

    def toggle_active_status(self, user_id: int, is_active: bool) -> Optional[User]:
        """Activate or deactivate a user; inactive users get no notifications."""
        user = self.update(user_id, {"is_active": is_active})
        if user is not None:
            self.commit()
        return user
