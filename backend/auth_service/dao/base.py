"""
Base Data Access Object (DAO) class.

WHY: Every table this service owns is touched in three ways only: insert a
row, load it by primary key, and flip columns with a guarded UPDATE. The
guarded UPDATE is the building block for race-free state changes (consuming
a token, revoking a session): the WHERE clause states the expected current
state and the affected row count says whether this request won.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Shared persistence operations for one model.

    Nothing here commits: the request-scoped session is committed (or
    rolled back) once by the get_db dependency.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **values: Any) -> ModelType:
        """
        Insert a row and return it with server-side defaults loaded.

        Raises:
            IntegrityError: If a unique or foreign key constraint is violated
        """
        instance = self.model(**values)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get(self, pk: Any) -> Optional[ModelType]:
        """
        Load a row by primary key, bypassing stale identity-map state.

        Args:
            pk: Primary key value (integer id or string key)

        Returns:
            The model instance if found, None otherwise
        """
        return await self.session.get(self.model, pk, populate_existing=True)

    async def update_where(self, *conditions: Any, **values: Any) -> int:
        """
        Set `values` on every row matching all `conditions`.

        Example:
            # Consume token 7 unless someone else already did
            won = await dao.update_where(
                VerificationToken.id == 7,
                VerificationToken.used_at.is_(None),
                used_at=utcnow(),
            ) == 1

        Returns:
            Number of rows changed
        """
        result = await self.session.execute(
            update(self.model).where(and_(*conditions)).values(**values)
        )
        return result.rowcount

    async def update(self, pk: Any, **values: Any) -> Optional[ModelType]:
        """
        Update one row by primary key.

        Returns:
            The refreshed instance, or None if no row has that key
        """
        (pk_column,) = self.model.__mapper__.primary_key
        if await self.update_where(pk_column == pk, **values) == 0:
            return None
        return await self.get(pk)
