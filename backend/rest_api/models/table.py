"""
Table Session Models: TableSession, Diner.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import SessionStatus
from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .order import OrderItem
    from .split import SplitBill


class TableSession(TimestampMixin, Base):
    """
    A dining session at a table.
    Starts when the first diner sits down and ends when the table pays and leaves.

    cart_version is bumped on every cart mutation so clients can tell
    whether their cached cart is stale.
    """

    __tablename__ = "table_session"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    table_code: Mapped[str] = mapped_column(Text, nullable=False)  # "M-07", "Terraza-3"
    status: Mapped[str] = mapped_column(Text, default=SessionStatus.ACTIVE, nullable=False, index=True)
    cart_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Relationships
    diners: Mapped[list["Diner"]] = relationship(
        back_populates="session", order_by="Diner.id"
    )
    order_items: Mapped[list["OrderItem"]] = relationship(back_populates="session")
    split_bills: Mapped[list["SplitBill"]] = relationship(back_populates="session")

    __table_args__ = (
        Index("ix_table_session_code_status", "table_code", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<TableSession(id={self.id}, table_code={self.table_code}, status={self.status})>"


class Diner(Base):
    """
    A person registered at a table session.

    Cart lines and split participants refer to diners by name, and names
    are not required to be registered here: participants may be guests
    who never opened the app.
    """

    __tablename__ = "diner"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("table_session.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    session: Mapped["TableSession"] = relationship(back_populates="diners")

    __table_args__ = (
        UniqueConstraint("session_id", "name", name="uq_diner_session_name"),
    )

    def __repr__(self) -> str:
        return f"<Diner(id={self.id}, session_id={self.session_id}, name={self.name})>"
