"""
Base repository with common database operations.
Provides reusable CRUD operations for all repositories.
"""
from typing import TypeVar, Generic, Optional, Dict, Any
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import DependencyError
from database.postgres import Base

T = TypeVar('T', bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """Base repository with common CRUD operations"""

    def __init__(self, model: type[T], db: Session):
        self.model = model
        self.db = db

    def _fail(self, operation: str, exc: Exception) -> DependencyError:
        """Roll back and wrap a database failure."""
        try:
            self.db.rollback()
        except SQLAlchemyError as rollback_exc:
            logger.error(f"Rollback after failed {operation} also failed: {rollback_exc}")
        return DependencyError(f"{self.model.__name__} {operation} failed: {exc}", operation=operation)

    def get_by_id(self, id: int) -> Optional[T]:
        """Get entity by ID"""
        try:
            return self.db.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as exc:
            raise self._fail("get_by_id", exc) from exc

    def create(self, obj_in: Dict[str, Any]) -> T:
        """Create new entity"""
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            self.db.flush()
            return db_obj
        except SQLAlchemyError as exc:
            raise self._fail("create", exc) from exc

    def update(self, id: int, obj_in: Dict[str, Any]) -> Optional[T]:
        """Update entity by ID"""
        db_obj = self.get_by_id(id)
        if not db_obj:
            return None

        try:
            for field, value in obj_in.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)
            self.db.flush()
            return db_obj
        except SQLAlchemyError as exc:
            raise self._fail("update", exc) from exc

    def commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("commit", exc) from exc
