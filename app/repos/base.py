from typing import Any, Generic, TypeVar, cast

from fastapi_async_sqlalchemy import db
from sqlalchemy import ScalarResult, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.selectable import Select

from app.exceptions import NotSupportedError
from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepo(Generic[ModelType]):
    """Base repository over the request-scoped session provided by fastapi_async_sqlalchemy."""

    def __init__(self, model: type[ModelType]) -> None:
        self._model = model
        self._db = db

    @property
    def base_stmt(self) -> Select[tuple[ModelType]]:
        """Base select statement for the model."""
        return select(self._model)

    @property
    def dialect_name(self) -> str:
        return cast(str, self._db.session.bind.dialect.name)

    def upsert_stmt(self) -> Insert:
        """INSERT statement for the bound dialect that supports ``on_conflict_do_update``."""
        if self.dialect_name == "postgresql":
            return postgresql.insert(self._model)
        if self.dialect_name == "sqlite":
            return sqlite.insert(self._model)
        raise NotSupportedError(f"Upsert is not supported on dialect {self.dialect_name}")

    async def get(self, id: Any) -> ModelType | None:
        """Get a model by ID."""
        return cast(ModelType | None, await self._db.session.get(self._model, id))

    async def execute(self, query: Select[tuple[ModelType]]) -> ScalarResult[ModelType]:
        """Execute a query and return scalar results."""
        result = await self._db.session.execute(query)
        return cast(ScalarResult[ModelType], result.scalars())

    async def count(self, query: Select[Any]) -> int:
        """Count the rows a query would return."""
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        result = await self._db.session.execute(count_query)
        return int(result.scalar_one())

    async def add(self, model: ModelType, commit: bool = False) -> None:
        """Add a model instance."""
        self._db.session.add(model)
        if commit:
            await self.commit()
        else:
            await self.flush()

    async def update(self, model: ModelType, values: dict[str, Any]) -> ModelType:
        """Assign attribute values on a model instance and flush."""
        for key, value in values.items():
            setattr(model, key, value)
        await self.flush()
        return model

    async def delete(self, model: ModelType) -> None:
        """Delete a model instance."""
        await self._db.session.delete(model)

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._db.session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        await self._db.session.rollback()

    async def flush(self) -> None:
        """Flush the current session."""
        await self._db.session.flush()
