"""
Order Domain Service.

Promotes pending cart lines into kitchen orders and moves kitchen orders
through their statuses:

    cart → placed → waiting → preparing → ready → served
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import ORDER_TRANSITIONS, OrderStatus, SessionStatus
from shared.config.logging import kitchen_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import InvalidTransitionError, OrderItemNotFoundError
from shared.utils.validators import normalize_name
from rest_api.models import OrderItem, TableSession
from .session_service import SessionService


@dataclass
class StatusChange:
    order: OrderItem
    from_status: str
    payment_ready: bool  # Every confirmed order of the session is now served


class OrderService:
    """Domain service for the order lifecycle."""

    def __init__(self, db: Session):
        self._db = db
        self._sessions = SessionService(db)

    def place(self, session_id: int, diner_name: str) -> list[int]:
        """
        Mark a diner's cart lines as placed (done choosing, awaiting confirmation).
        Placed lines are still editable and still count as pending.
        """
        diner_name = normalize_name(diner_name)
        session = self._sessions.get_active(session_id, lock=True)

        lines = self._db.scalars(
            select(OrderItem)
            .where(
                OrderItem.session_id == session_id,
                OrderItem.diner_name == diner_name,
                OrderItem.status == OrderStatus.CART,
            )
            .order_by(OrderItem.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).all()
        if not lines:
            return []

        order_ids = [line.id for line in lines]
        for line in lines:
            line.status = OrderStatus.PLACED
        session.cart_version += 1
        safe_commit(self._db, "placing orders")

        logger.info("Orders placed", session_id=session_id, diner_name=diner_name, order_ids=order_ids)
        return order_ids

    def confirm(self, session_id: int) -> list[int]:
        """
        Send every pending line of the session to the kitchen.

        The session row is locked first, so a cart addition racing with this
        call lands either before (and is confirmed) or after (and stays in
        the cart). All lines move in one commit.

        Returns the confirmed order ids, empty when the cart was empty.
        """
        session = self._sessions.get_active(session_id, lock=True)

        lines = self._db.scalars(
            select(OrderItem)
            .where(
                OrderItem.session_id == session_id,
                OrderItem.status.in_(OrderStatus.PENDING),
            )
            .order_by(OrderItem.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).all()
        if not lines:
            logger.info("Nothing to confirm", session_id=session_id)
            return []

        confirmed_at = datetime.now(timezone.utc)
        order_ids = [line.id for line in lines]
        for line in lines:
            line.status = OrderStatus.WAITING
            line.confirmed_at = confirmed_at
        session.cart_version += 1
        safe_commit(self._db, "confirming orders")

        logger.info("Orders confirmed", session_id=session_id, count=len(order_ids), order_ids=order_ids)
        return order_ids

    def advance(self, order_id: int, target_status: str) -> StatusChange:
        """
        Move a kitchen order exactly one step forward.

        Raises:
            OrderItemNotFoundError: unknown order
            InvalidTransitionError: skip, regression, repeat, unknown status,
                or an order that has not been confirmed yet
        """
        order = self._db.scalar(
            select(OrderItem)
            .where(OrderItem.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if order is None:
            raise OrderItemNotFoundError(order_id)

        from_status = order.status
        # Pending and served orders have no kitchen transition
        allowed = ORDER_TRANSITIONS.get(from_status)
        if allowed is None or target_status != allowed:
            raise InvalidTransitionError("order", from_status, target_status, order_id=order_id)

        order.status = target_status
        session_id = order.session_id
        safe_commit(self._db, "advancing order status")

        payment_ready = target_status == OrderStatus.SERVED and self._all_served(session_id)
        logger.info(
            "Order status changed",
            order_id=order_id,
            session_id=session_id,
            from_status=from_status,
            to_status=target_status,
            payment_ready=payment_ready,
        )
        return StatusChange(order=order, from_status=from_status, payment_ready=payment_ready)

    def list_confirmed(self, session_id: int) -> list[OrderItem]:
        """Kitchen orders of a session, most recently confirmed first."""
        self._sessions.get(session_id)
        return list(
            self._db.scalars(
                select(OrderItem)
                .options(
                    selectinload(OrderItem.menu_item),
                    selectinload(OrderItem.split_bill),
                    selectinload(OrderItem.session),
                )
                .where(
                    OrderItem.session_id == session_id,
                    OrderItem.status.in_(OrderStatus.CONFIRMED),
                )
                .order_by(OrderItem.confirmed_at.desc(), OrderItem.id.desc())
            ).all()
        )

    def kitchen_queue(self) -> list[OrderItem]:
        """Orders still being worked on across active sessions, oldest first."""
        return list(
            self._db.scalars(
                select(OrderItem)
                .join(TableSession, OrderItem.session_id == TableSession.id)
                .options(
                    selectinload(OrderItem.menu_item),
                    selectinload(OrderItem.split_bill),
                    selectinload(OrderItem.session),
                )
                .where(
                    TableSession.status == SessionStatus.ACTIVE,
                    OrderItem.status.in_(OrderStatus.KITCHEN_ACTIVE),
                )
                .order_by(OrderItem.confirmed_at, OrderItem.id)
            ).all()
        )

    def _all_served(self, session_id: int) -> bool:
        outstanding = self._db.scalar(
            select(func.count(OrderItem.id)).where(
                OrderItem.session_id == session_id,
                OrderItem.status.in_(OrderStatus.KITCHEN_ACTIVE),
            )
        )
        return outstanding == 0
