from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import col

from overtime.models.counter import SequenceCounter

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

ORDER_SEQUENCE = "individual_overtime_orders"
SUBMISSION_SEQUENCE = "overtime_submissions"

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def next_sequence(session: AsyncSession, name: str, year: int) -> int:
    """Atomically increment and return the counter for ``(name, year)``.

    The first call for a key creates it at 1. The increment joins the caller's
    transaction; if that transaction rolls back the number is never handed out,
    and if the caller fails after committing the number is simply skipped.
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        msg = f"Sequence counter does not support the {dialect!r} dialect"
        raise RuntimeError(msg)

    stmt = (
        insert(SequenceCounter)
        .values(key=f"{name}_{year}", seq=1)
        .on_conflict_do_update(
            index_elements=["key"],
            set_={"seq": col(SequenceCounter.seq) + 1},
        )
        .returning(col(SequenceCounter.seq))
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


def format_internal_id(seq: int, year: int) -> str:
    """Render the human-facing ID, e.g. ``12/25`` for the twelfth record of 2025."""
    return f"{seq}/{year % 100:02d}"


async def next_internal_id(session: AsyncSession, name: str, now: datetime) -> str:
    seq = await next_sequence(session, name, now.year)
    return format_internal_id(seq, now.year)
