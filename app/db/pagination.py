"""Pagination helpers bridging SQLModel selects and fastapi-pagination pages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi_pagination.ext.sqlmodel import apaginate

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar


async def paginate(
    session: AsyncSession,
    statement: SelectOfScalar[Any],
    *,
    transformer: Callable[[Sequence[Any]], Sequence[Any]] | None = None,
) -> Any:
    """Run `statement` under the current request's limit/offset params."""
    return await apaginate(session, statement, transformer=transformer)
