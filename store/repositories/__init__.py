"""
Repository package for database operations.
Following Repository Pattern for clean separation of data access logic.
"""
from .base import BaseRepository
from .user import UserRepository
from .expenses import ExpenseRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "ExpenseRepository",
]
