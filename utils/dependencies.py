"""
Dependency injection utilities for FastAPI routes and background jobs.
"""
from contextlib import contextmanager
from typing import Callable, Type, TypeVar
from sqlalchemy.orm import Session
from fastapi import Depends, Request

from database.postgres import SessionLocal, get_db, session_scope
from store.repositories import ExpenseRepository, UserRepository
from store.repositories.base import BaseRepository

T = TypeVar("T", bound=BaseRepository)


def get_repository(repository_class: Type[T]) -> Callable[[Session], T]:
    """
    Generic dependency function that creates and returns repository instances.

    Usage:
        @app.get("/users")
        async def get_users(
            user_repo: UserRepository = Depends(get_repository(UserRepository))
        ):
            ...
    """
    def _get_repository(db: Session = Depends(get_db)) -> T:
        return repository_class(db)

    return _get_repository


@contextmanager
def open_repositories(session_factory=SessionLocal):
    """User and expense repositories sharing one session, for background jobs."""
    with session_scope(session_factory) as db:
        yield UserRepository(db), ExpenseRepository(db)


def get_job_registry(request: Request):
    """The JobRegistry built at startup and kept on app.state."""
    return request.app.state.job_registry


def get_notification_jobs(request: Request):
    return request.app.state.notification_jobs


def get_limit_check_queue(request: Request):
    return request.app.state.limit_check_queue
