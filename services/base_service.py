"""
Base service class for the Draft Assistant

Provides session handling, transactional boundaries and row conversion for
all data services.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, List, Mapping, Optional, Type, TypeVar

from sqlalchemy import Table, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.session import get_session_factory
from exceptions import ConflictError
from models.base import DraftBaseModel

logger = logging.getLogger(f'{__name__}.BaseService')

T = TypeVar('T', bound=DraftBaseModel)


def new_id() -> str:
    """Generate a new primary key."""
    return str(uuid.uuid4())


class BaseService(Generic[T]):
    """
    Base service class providing common persistence operations.

    Features:
    - Generic type support for any DraftBaseModel subclass
    - One transaction per unit of work via ``transaction()``
    - Integrity violations surfaced as ConflictError after rollback
    - Session factory override for tests (uses global factory by default)
    """

    def __init__(self,
                 model_class: Type[T],
                 table: Table,
                 session_factory: Optional[async_sessionmaker] = None):
        """
        Initialize base service.

        Args:
            model_class: Pydantic model class for this service
            table: SQLAlchemy table backing the model
            session_factory: Optional session factory override
        """
        self.model_class = model_class
        self.table = table
        self._session_factory = session_factory

        logger.debug(f"Initialized {self.__class__.__name__} for {model_class.__name__} on table '{table.name}'")

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session and run the block inside one transaction.

        Commits on success and rolls back on any exception. A uniqueness or
        foreign-key violation at write or commit time is re-raised as
        ConflictError so callers see a lost race, never a driver error.
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except IntegrityError as e:
                logger.info(f"Integrity violation in {self.__class__.__name__}: {e.orig}")
                raise ConflictError("Concurrent update conflict - refresh draft state and retry") from e

    def _to_model(self, row: Mapping[str, Any]) -> T:
        return self.model_class.from_db_row(row)

    async def get_by_id(self, object_id: str, session: Optional[AsyncSession] = None) -> Optional[T]:
        """
        Get single object by ID.

        Args:
            object_id: Unique identifier for the object
            session: Run inside an existing transaction when given

        Returns:
            Model instance or None if not found
        """
        query = select(self.table).where(self.table.c.id == object_id)

        if session is not None:
            row = (await session.execute(query)).mappings().first()
        else:
            async with self.transaction() as own_session:
                row = (await own_session.execute(query)).mappings().first()

        if row is None:
            logger.debug(f"{self.model_class.__name__} {object_id} not found")
            return None

        return self._to_model(row)

    async def _fetch_all(self, query, session: Optional[AsyncSession] = None) -> List[T]:
        if session is not None:
            rows = (await session.execute(query)).mappings().all()
        else:
            async with self.transaction() as own_session:
                rows = (await own_session.execute(query)).mappings().all()
        return [self._to_model(row) for row in rows]
