from __future__ import annotations

from sqlmodel import Field, SQLModel


class SequenceCounter(SQLModel, table=True):
    """Durable per-(name, year) counter behind human-readable internal IDs."""

    __tablename__ = "sequence_counter"

    key: str = Field(primary_key=True, max_length=100)
    seq: int = Field(default=0)
