"""
Split Bill Models: SplitBill.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Index, Integer, JSON, Numeric, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import SplitStatus
from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .table import TableSession
    from .catalog import MenuItem
    from .order import OrderItem


class SplitBill(TimestampMixin, Base):
    """
    Agreement to divide one menu item's price among named participants.

    Rows are immutable in price and participants. Changing the terms creates
    a new row that becomes current; the previous one keeps pricing the orders
    that already reached the kitchen.

    - is_current: receives new linkage for its (session, menu item); at most one
    - status: superseded once it is no longer current and no order references it;
      only active agreements price orders on the bill
    """

    __tablename__ = "split_bill"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("table_session.id"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_item.id"), nullable=False, index=True
    )
    original_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    split_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # Sorted, de-duplicated diner names
    participants: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(Text, default=SplitStatus.ACTIVE, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    session: Mapped["TableSession"] = relationship(back_populates="split_bills")
    menu_item: Mapped["MenuItem"] = relationship()
    order_items: Mapped[list["OrderItem"]] = relationship(back_populates="split_bill")

    __table_args__ = (
        # Resolves the creation race: the second writer fails on this index
        Index(
            "uq_split_bill_current",
            "session_id", "menu_item_id",
            unique=True,
            sqlite_where=text("is_current = 1"),
            postgresql_where=text("is_current"),
        ),
        CheckConstraint("split_count > 0", name="ck_split_bill_split_count"),
        CheckConstraint("original_price > 0", name="ck_split_bill_original_price"),
    )

    @property
    def split_price(self) -> Decimal:
        """Per-portion price. Never rounded here."""
        return Decimal(self.original_price) / self.split_count

    def matches(self, original_price: Decimal, split_count: int, participants: list[str]) -> bool:
        """True when the terms are identical (participants compared as sets)."""
        return (
            Decimal(self.original_price) == Decimal(original_price)
            and self.split_count == split_count
            and set(self.participants) == set(participants)
        )

    def __repr__(self) -> str:
        return (
            f"<SplitBill(id={self.id}, session_id={self.session_id}, menu_item_id={self.menu_item_id}, "
            f"split_count={self.split_count}, status={self.status}, current={self.is_current})>"
        )
