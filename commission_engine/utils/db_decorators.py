"""
Database decorators for automatic rollback.

Provides a decorator that rolls back the session when a service method
fails, so a half-flushed unit of work never leaks into the next call.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _find_session(args: tuple, kwargs: dict) -> AsyncSession | None:
    session = kwargs.get("session")
    if session is not None:
        return session
    if args:
        first = args[0]
        if isinstance(first, AsyncSession):
            return first
        # Bound service method: the owner keeps its session on ``self``
        owner_session = getattr(first, "session", None)
        if owner_session is not None:
            return owner_session
    return None


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator that rolls back the session on any exception.

    Works for plain coroutines taking ``session`` and for service methods
    whose instance exposes ``self.session``. The original exception is
    re-raised.

    Example:
        class PinRequestService:
            @with_rollback_on_error
            async def approve(self, request_id: int, admin_id: int):
                ...
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            try:
                await session.rollback()
                logger.info(
                    f"Rollback performed in {func.__name__} due to error: "
                    f"{type(e).__name__}"
                )
            except Exception as rollback_error:
                logger.error(
                    f"Failed to rollback in {func.__name__}: {rollback_error}"
                )
            raise

    return wrapper
