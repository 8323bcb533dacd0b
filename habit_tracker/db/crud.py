"""Small persistence helpers shared by services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlmodel import SQLModel

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel.ext.asyncio.session import AsyncSession

ModelT = TypeVar("ModelT", bound=SQLModel)


async def save(session: AsyncSession, obj: ModelT, *, commit: bool = True) -> ModelT:
    """Add an object to the session, optionally committing and refreshing it."""
    session.add(obj)
    if commit:
        await session.commit()
        await session.refresh(obj)
    else:
        await session.flush()
    return obj


async def patch(
    session: AsyncSession,
    obj: ModelT,
    updates: dict[str, Any],
    *,
    commit: bool = True,
) -> ModelT:
    """Apply attribute updates to a loaded object and persist them."""
    for key, value in updates.items():
        setattr(obj, key, value)
    return await save(session, obj, commit=commit)


async def delete(session: AsyncSession, obj: SQLModel, *, commit: bool = True) -> None:
    """Delete one loaded object."""
    await session.delete(obj)
    if commit:
        await session.commit()


async def delete_where(
    session: AsyncSession,
    model: type[SQLModel],
    *criteria: ColumnElement[bool],
    commit: bool = True,
) -> int:
    """Bulk-delete rows matching all criteria; returns the affected row count."""
    statement = sa_delete(model).where(*criteria)
    result = await session.exec(statement)  # type: ignore[call-overload]
    if commit:
        await session.commit()
    return int(result.rowcount or 0)


async def update_where(
    session: AsyncSession,
    model: type[SQLModel],
    *criteria: ColumnElement[bool],
    commit: bool = True,
    **values: Any,
) -> int:
    """Bulk-update rows matching all criteria; returns the affected row count."""
    statement = sa_update(model).where(*criteria).values(**values)
    result = await session.exec(statement)  # type: ignore[call-overload]
    if commit:
        await session.commit()
    return int(result.rowcount or 0)
