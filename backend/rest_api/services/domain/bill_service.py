"""
Bill Domain Service.

Two views of the same confirmed orders:

- my share: what one diner owes (personal orders plus their portion of
  every split they take part in)
- table total: what the table owes, each order counted once

Payment requests freeze a diner's share at request time; completing the
last outstanding one (or any table payment) ends the session.

Split orders contribute split_price × quantity. Everything here works on
unrounded Decimals; rounding to cents happens in the response schemas.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import (
    OrderStatus,
    PaymentMethod,
    PaymentRequestStatus,
    PaymentType,
    SessionStatus,
    SplitStatus,
)
from shared.config.logging import billing_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import InvalidStateError, PaymentRequestNotFoundError, ValidationError
from shared.utils.money import ZERO, compute_vat, money_equal, round_money
from shared.utils.validators import normalize_name
from rest_api.models import OrderItem, PaymentRequest, TableSession
from .session_service import SessionService


# =============================================================================
# Value types
# =============================================================================


@dataclass(frozen=True)
class BillLine:
    """A confirmed order reduced to what billing needs."""

    order_id: int
    menu_item_name: str
    quantity: int
    unit_price: Decimal
    diner_name: str | None = None
    split_price: Decimal | None = None
    split_count: int | None = None
    participants: tuple[str, ...] = ()

    @property
    def is_split(self) -> bool:
        return self.split_price is not None and len(self.participants) > 0

    @property
    def amount(self) -> Decimal:
        """Contribution of this order: per participant for splits, to the owner otherwise."""
        if self.is_split:
            return self.split_price * self.quantity
        return self.unit_price * self.quantity

    @classmethod
    def from_order(cls, order: OrderItem) -> "BillLine":
        """Only an active agreement prices the order; otherwise it bills as personal."""
        split = order.split_bill
        if split is not None and split.status != SplitStatus.ACTIVE:
            split = None
        return cls(
            order_id=order.id,
            menu_item_name=order.menu_item.name,
            quantity=order.quantity,
            unit_price=Decimal(order.unit_price),
            diner_name=order.diner_name,
            split_price=split.split_price if split is not None else None,
            split_count=split.split_count if split is not None else None,
            participants=tuple(split.participants) if split is not None else (),
        )


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    vat: Decimal
    total: Decimal

    @classmethod
    def from_subtotal(cls, subtotal: Decimal) -> "BillTotals":
        vat = compute_vat(subtotal)
        return cls(subtotal=subtotal, vat=vat, total=subtotal + vat)


@dataclass
class DinerBill:
    """One entry of the per-diner breakdown. diner_name None collects unowned orders."""

    diner_name: str | None
    personal_items: list[BillLine] = field(default_factory=list)
    shared_items: list[BillLine] = field(default_factory=list)

    @property
    def personal_subtotal(self) -> Decimal:
        return sum((line.amount for line in self.personal_items), ZERO)

    @property
    def shared_subtotal(self) -> Decimal:
        return sum((line.amount for line in self.shared_items), ZERO)

    @property
    def totals(self) -> BillTotals:
        return BillTotals.from_subtotal(self.personal_subtotal + self.shared_subtotal)


@dataclass(frozen=True)
class DinerPayment:
    diner_name: str
    amount_due: Decimal
    paid: bool

    @property
    def settled(self) -> bool:
        """Paid, or nothing to pay."""
        return self.paid or self.amount_due <= 0


@dataclass
class PaymentStatus:
    """Who has paid at a table, plus the most recent payment request."""

    session_id: int
    session_status: str
    diners: list[DinerPayment]
    table_paid: bool  # A completed table payment covers everyone
    latest_request: PaymentRequest | None = None

    @property
    def paid_diners(self) -> int:
        return sum(1 for diner in self.diners if diner.paid)

    @property
    def remaining_diners(self) -> int:
        return sum(1 for diner in self.diners if not diner.settled)

    @property
    def all_paid(self) -> bool:
        if self.table_paid:
            return True
        owing = [diner for diner in self.diners if diner.amount_due > 0]
        return bool(owing) and all(diner.settled for diner in self.diners)


@dataclass
class PaymentCompletion:
    payment_request: PaymentRequest
    already_completed: bool = False
    session_ended: bool = False


# =============================================================================
# Pure computations
# =============================================================================


def compute_diner_share(lines: list[BillLine], diner_name: str) -> BillTotals:
    """
    What one diner owes.

    Unowned personal orders are attributed to whoever asks, so a diner
    alone at a table with legacy orders still sees the full bill.
    """
    subtotal = ZERO
    for line in lines:
        if line.is_split:
            if diner_name in line.participants:
                subtotal += line.amount
        elif line.diner_name is None or line.diner_name == diner_name:
            subtotal += line.amount
    return BillTotals.from_subtotal(subtotal)


def compute_table_total(lines: list[BillLine]) -> BillTotals:
    """What the whole table owes, every order counted once."""
    return BillTotals.from_subtotal(sum((line.amount for line in lines), ZERO))


def compute_per_diner_breakdown(
    lines: list[BillLine],
    diner_names: list[str] | None = None,
) -> list[DinerBill]:
    """
    Itemised bill per person: every owner and every split participant.

    Registered diners passed in diner_names appear even with nothing to pay.
    Entries are sorted by name, with the unassigned entry last.
    """
    bills: dict[str | None, DinerBill] = {}

    def bill_for(name: str | None) -> DinerBill:
        if name not in bills:
            bills[name] = DinerBill(diner_name=name)
        return bills[name]

    for name in diner_names or []:
        bill_for(name)

    for line in lines:
        if line.is_split:
            for participant in line.participants:
                bill_for(participant).shared_items.append(line)
        else:
            bill_for(line.diner_name).personal_items.append(line)

    return sorted(bills.values(), key=lambda b: (b.diner_name is None, b.diner_name or ""))


def compute_diner_payments(
    bills: list[DinerBill],
    paid_names: set[str],
    table_paid: bool = False,
) -> list[DinerPayment]:
    """
    Paid flag per named diner of a breakdown.

    A diner is paid once one of their own requests is completed, or once
    anyone completes a table payment. Unowned orders have no entry.
    """
    return [
        DinerPayment(
            diner_name=bill.diner_name,
            amount_due=bill.totals.total,
            paid=table_paid or bill.diner_name in paid_names,
        )
        for bill in bills
        if bill.diner_name is not None
    ]


# =============================================================================
# Service
# =============================================================================


class BillService:
    """Loads confirmed orders of a session and computes bill views over them."""

    def __init__(self, db: Session):
        self._db = db
        self._sessions = SessionService(db)

    def load_lines(self, session_id: int) -> list[BillLine]:
        """Confirmed orders of a session as BillLines. Raises SessionNotFoundError."""
        self._sessions.get(session_id)
        orders = self._db.scalars(
            select(OrderItem)
            .options(selectinload(OrderItem.menu_item), selectinload(OrderItem.split_bill))
            .where(
                OrderItem.session_id == session_id,
                OrderItem.status.in_(OrderStatus.CONFIRMED),
            )
            .order_by(OrderItem.id)
        ).all()
        return [BillLine.from_order(order) for order in orders]

    def my_share(self, session_id: int, diner_name: str) -> BillTotals:
        diner_name = normalize_name(diner_name)
        return compute_diner_share(self.load_lines(session_id), diner_name)

    def table_total(self, session_id: int) -> tuple[BillTotals, int]:
        """Returns (totals, number of confirmed orders)."""
        lines = self.load_lines(session_id)
        return compute_table_total(lines), len(lines)

    def per_diner(self, session_id: int) -> tuple[list[DinerBill], BillTotals]:
        session = self._sessions.get_with_diners(session_id)
        lines = self.load_lines(session_id)
        registered = [diner.name for diner in session.diners]
        return compute_per_diner_breakdown(lines, registered), compute_table_total(lines)

    # =========================================================================
    # Payment request
    # =========================================================================

    def request_payment(
        self,
        session_id: int,
        diner_name: str,
        tip_amount: Decimal | int | str = ZERO,
    ) -> PaymentRequest:
        """
        Record a diner's request to pay.

        Allowed only once every confirmed order has been served. The request
        is classified as a table payment when the diner's share already
        equals the table total.

        Raises:
            ValidationError: negative tip or blank name
            SessionNotFoundError: unknown session
            InvalidStateError: no confirmed orders, or some still in the kitchen
        """
        diner_name = normalize_name(diner_name)
        tip = Decimal(str(tip_amount))
        if not tip.is_finite() or tip < 0:
            raise ValidationError("tip_amount cannot be negative", field="tip_amount", value=str(tip_amount))

        self._sessions.get(session_id)
        self._ensure_all_served(session_id)

        lines = self.load_lines(session_id)
        share = compute_diner_share(lines, diner_name)
        table = compute_table_total(lines)
        payment_type = PaymentType.TABLE if money_equal(share.total, table.total) else PaymentType.INDIVIDUAL

        payment_request = PaymentRequest(
            session_id=session_id,
            diner_name=diner_name,
            payment_type=payment_type,
            subtotal=round_money(share.subtotal),
            vat=round_money(share.vat),
            tip=round_money(tip),
            final_total=round_money(share.total + tip),
            status=PaymentRequestStatus.PENDING,
        )
        self._db.add(payment_request)
        safe_commit(self._db, "requesting payment")
        self._db.refresh(payment_request)

        logger.info(
            "Payment requested",
            session_id=session_id,
            payment_request_id=payment_request.id,
            diner_name=diner_name,
            payment_type=payment_type,
            final_total=str(payment_request.final_total),
        )
        return payment_request

    def complete_payment(
        self,
        payment_request_id: int,
        payment_method: str,
        completed_by: str,
    ) -> PaymentCompletion:
        """
        Mark a pending payment request as collected.

        Completing an already completed request returns it unchanged. The
        table session ends in the same commit when this was a table payment,
        or when every diner who owes something now has a completed payment.

        Raises:
            ValidationError: unknown payment method or blank completed_by
            PaymentRequestNotFoundError: unknown request
        """
        if payment_method not in PaymentMethod.ALL:
            raise ValidationError(
                f"payment_method must be one of: {', '.join(PaymentMethod.ALL)}",
                field="payment_method",
                value=payment_method,
            )
        completed_by = normalize_name(completed_by, field="completed_by")

        session, payment_request = self._lock_payment_request(payment_request_id)
        if payment_request.is_completed:
            logger.info("Payment already completed", payment_request_id=payment_request_id)
            return PaymentCompletion(payment_request=payment_request, already_completed=True)

        payment_request.status = PaymentRequestStatus.COMPLETED
        payment_request.payment_method = payment_method
        payment_request.completed_by = completed_by
        payment_request.completed_at = datetime.now(timezone.utc)
        self._db.flush()

        session_ended = False
        if session.status == SessionStatus.ACTIVE and (
            payment_request.payment_type == PaymentType.TABLE
            or self.payment_status(session.id).all_paid
        ):
            session.status = SessionStatus.ENDED
            session.ended_at = payment_request.completed_at
            session_ended = True

        safe_commit(self._db, "completing payment")
        self._db.refresh(payment_request)

        logger.info(
            "Payment completed",
            session_id=session.id,
            payment_request_id=payment_request_id,
            diner_name=payment_request.diner_name,
            payment_method=payment_method,
            completed_by=completed_by,
            session_ended=session_ended,
        )
        return PaymentCompletion(payment_request=payment_request, session_ended=session_ended)

    def payment_status(self, session_id: int) -> PaymentStatus:
        """Paid or pending per diner, from the completed payment requests of a session."""
        session = self._sessions.get_with_diners(session_id)
        lines = self.load_lines(session_id)
        bills = compute_per_diner_breakdown(lines, [diner.name for diner in session.diners])

        requests = self._db.scalars(
            select(PaymentRequest)
            .where(PaymentRequest.session_id == session_id)
            .order_by(PaymentRequest.id)
        ).all()
        completed = [request for request in requests if request.is_completed]
        table_paid = any(request.payment_type == PaymentType.TABLE for request in completed)
        paid_names = {request.diner_name for request in completed}

        return PaymentStatus(
            session_id=session_id,
            session_status=session.status,
            diners=compute_diner_payments(bills, paid_names, table_paid),
            table_paid=table_paid,
            latest_request=requests[-1] if requests else None,
        )

    def _lock_payment_request(self, payment_request_id: int) -> tuple[TableSession, PaymentRequest]:
        """Session first, then the request, the same order every other writer locks in."""
        payment_request = self._db.get(PaymentRequest, payment_request_id)
        if payment_request is None:
            raise PaymentRequestNotFoundError(payment_request_id)

        session = self._sessions.get(payment_request.session_id, lock=True)
        payment_request = self._db.get(
            PaymentRequest, payment_request_id, with_for_update=True, populate_existing=True
        )
        return session, payment_request

    def _ensure_all_served(self, session_id: int) -> None:
        statuses = self._db.scalars(
            select(OrderItem.status).where(
                OrderItem.session_id == session_id,
                OrderItem.status.in_(OrderStatus.CONFIRMED),
            )
        ).all()
        if not statuses:
            raise InvalidStateError("Bill", "no confirmed orders", [OrderStatus.SERVED], session_id=session_id)

        outstanding = Counter(s for s in statuses if s != OrderStatus.SERVED)
        if outstanding:
            summary = ", ".join(f"{count} {status}" for status, count in sorted(outstanding.items()))
            raise InvalidStateError(
                "Bill",
                summary,
                [OrderStatus.SERVED],
                session_id=session_id,
                outstanding=dict(outstanding),
            )
