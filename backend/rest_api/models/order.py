"""
Order Models: OrderItem.

A cart line and a confirmed order are the same row: confirmation only
changes its status, so the diner, flags, price snapshot and split linkage
carry over untouched.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus
from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .table import TableSession
    from .catalog import MenuItem
    from .split import SplitBill


class OrderItem(TimestampMixin, Base):
    """
    One menu item ordered by one diner.

    Status flow: cart → placed → waiting → preparing → ready → served.
    cart and placed are pending (editable by the diner); waiting onwards
    belongs to the kitchen and is what the bill is computed from.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("table_session.id"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_item.id"), nullable=False, index=True
    )
    # NULL only for rows created before names were mandatory
    diner_name: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_shared: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_takeaway: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    split_bill_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("split_bill.id"), index=True
    )
    status: Mapped[str] = mapped_column(Text, default=OrderStatus.CART, nullable=False, index=True)
    # Menu price at the time the line was added
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)

    # Relationships
    session: Mapped["TableSession"] = relationship(back_populates="order_items")
    menu_item: Mapped["MenuItem"] = relationship()
    split_bill: Mapped[Optional["SplitBill"]] = relationship(back_populates="order_items")

    __table_args__ = (
        # Coalescing key: one open cart line per diner, item and flags
        Index(
            "uq_order_item_cart_line",
            "session_id", "diner_name", "menu_item_id", "is_shared", "is_takeaway",
            unique=True,
            sqlite_where=text("status = 'cart'"),
            postgresql_where=text("status = 'cart'"),
        ),
        Index("ix_order_item_session_status", "session_id", "status"),
        CheckConstraint("quantity > 0", name="ck_order_item_quantity"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status in OrderStatus.PENDING

    @property
    def is_confirmed(self) -> bool:
        return self.status in OrderStatus.CONFIRMED

    def __repr__(self) -> str:
        return (
            f"<OrderItem(id={self.id}, session_id={self.session_id}, "
            f"menu_item_id={self.menu_item_id}, qty={self.quantity}, status={self.status})>"
        )
