"""
Base service class for the ranking engine.

Provides async database session management for all service layer operations,
plus the per-page transaction scope the batch jobs rely on.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from beatrank.utils.leaderboard_exceptions import TransientPersistenceError

logger = logging.getLogger(__name__)

class BaseService:
    """Base class for all services with async database session management."""

    def __init__(self, session_factory):
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory from Database class
        """
        self.session_factory = session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for async database operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def page_transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """
        All-or-nothing scope for one batch page.

        Database errors roll back only this page's writes and surface as
        TransientPersistenceError so the caller can move on to the next page.
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise TransientPersistenceError(operation, str(e)) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
