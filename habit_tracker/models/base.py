"""Base model with a small chainable query manager (`Model.objects`)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from sqlmodel import SQLModel, col, select

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel.ext.asyncio.session import AsyncSession

ModelT = TypeVar("ModelT", bound="QueryModel")


@dataclass(frozen=True)
class ModelQuery(Generic[ModelT]):
    """Immutable query builder; every refinement returns a new instance."""

    model: type[ModelT]
    criteria: tuple[ColumnElement[bool], ...] = ()
    ordering: tuple[Any, ...] = field(default_factory=tuple)

    def filter(self, *criteria: ColumnElement[bool]) -> ModelQuery[ModelT]:
        return ModelQuery(self.model, (*self.criteria, *criteria), self.ordering)

    def filter_by(self, **values: object) -> ModelQuery[ModelT]:
        criteria = tuple(col(getattr(self.model, key)) == value for key, value in values.items())
        return self.filter(*criteria)

    def by_id(self, obj_id: object) -> ModelQuery[ModelT]:
        return self.filter_by(id=obj_id)

    def by_ids(self, obj_ids: Iterable[object]) -> ModelQuery[ModelT]:
        return self.by_field_in("id", obj_ids)

    def by_field_in(self, field_name: str, values: Iterable[object]) -> ModelQuery[ModelT]:
        return self.filter(col(getattr(self.model, field_name)).in_(list(values)))

    def order_by(self, *ordering: Any) -> ModelQuery[ModelT]:
        return ModelQuery(self.model, self.criteria, (*self.ordering, *ordering))

    def statement(self) -> Any:
        statement = select(self.model)
        if self.criteria:
            statement = statement.where(*self.criteria)
        if self.ordering:
            statement = statement.order_by(*self.ordering)
        return statement

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list(await session.exec(self.statement()))

    async def first(self, session: AsyncSession) -> ModelT | None:
        result = await session.exec(self.statement().limit(1))
        return result.first()

    async def exists(self, session: AsyncSession) -> bool:
        return await self.first(session) is not None


class _ObjectsDescriptor:
    def __get__(self, _instance: object, owner: type[ModelT]) -> ModelQuery[ModelT]:
        return ModelQuery(owner)


class QueryModel(SQLModel):
    """SQLModel base exposing `Model.objects` for terse lookups."""

    objects: ClassVar[_ObjectsDescriptor] = _ObjectsDescriptor()
