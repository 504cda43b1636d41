"""
Billing Models: PaymentRequest.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import PaymentRequestStatus
from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .table import TableSession


class PaymentRequest(TimestampMixin, Base):
    """
    A diner asking to pay, with the amounts frozen at request time.

    payment_type is "table" when the requester's share equals the whole
    table total (they are paying for everyone), otherwise "individual".
    Staff mark it completed once the money is collected; payment_method,
    completed_by and completed_at are set then and never change again.
    """

    __tablename__ = "payment_request"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("table_session.id"), nullable=False, index=True
    )
    diner_name: Mapped[str] = mapped_column(Text, nullable=False)
    payment_type: Mapped[str] = mapped_column(Text, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    vat: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tip: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    final_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(Text, default=PaymentRequestStatus.PENDING, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(Text)
    completed_by: Mapped[Optional[str]] = mapped_column(Text)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    session: Mapped["TableSession"] = relationship()

    __table_args__ = (
        CheckConstraint("tip >= 0", name="ck_payment_request_tip"),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentRequestStatus.COMPLETED

    def __repr__(self) -> str:
        return (
            f"<PaymentRequest(id={self.id}, session_id={self.session_id}, "
            f"diner={self.diner_name}, type={self.payment_type}, total={self.final_total}, "
            f"status={self.status})>"
        )
