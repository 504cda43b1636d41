"""
Cart Domain Service.

Per-diner pending lines for a table session. A line stays in the cart
until the table confirms, at which point the same row becomes a kitchen
order (see OrderService.confirm).

The cart never creates, edits or removes split bills; it only carries the
is_shared flag that split linkage later keys on.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import OrderStatus
from shared.config.logging import cart_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ConflictError,
    InvalidStateError,
    OrderItemNotFoundError,
    ValidationError,
)
from shared.utils.money import money_equal
from shared.utils.validators import normalize_name, validate_notes, validate_quantity
from rest_api.models import OrderItem, TableSession
from .menu_service import MenuService
from .session_service import SessionService


@dataclass
class CartChange:
    """Outcome of a cart mutation, used for the response and the notification."""

    session_id: int
    cart_version: int
    line: OrderItem | None = None  # None when the line was removed
    created: bool = False
    removed_id: int | None = None
    removed_count: int = 0
    diner_name: str | None = None


class CartService:
    """Domain service for cart lines (OrderItem rows in a pending status)."""

    def __init__(self, db: Session):
        self._db = db
        self._sessions = SessionService(db)
        self._menu = MenuService(db)

    # =========================================================================
    # Add
    # =========================================================================

    def add_item(
        self,
        session_id: int,
        diner_name: str,
        menu_item_id: int,
        notes: str | None = None,
        is_shared: bool = False,
        is_takeaway: bool = False,
        client_price: Decimal | None = None,
    ) -> CartChange:
        """
        Add one unit of a menu item to a diner's cart.

        An existing cart line with the same diner, item and flags is
        incremented instead of duplicated. If a concurrent request inserts
        that line first, the insert is retried once as an increment.

        Raises:
            SessionNotFoundError, MenuItemNotFoundError: unknown ids
            InvalidStateError: session has ended
            ValidationError: blank diner name, non-positive price, quantity over limit
        """
        diner_name = normalize_name(diner_name)
        notes = validate_notes(notes)

        try:
            change = self._add_once(session_id, diner_name, menu_item_id, notes, is_shared, is_takeaway)
        except IntegrityError:
            logger.warning(
                "Cart line inserted concurrently, retrying as increment",
                session_id=session_id,
                diner_name=diner_name,
                menu_item_id=menu_item_id,
            )
            try:
                change = self._add_once(session_id, diner_name, menu_item_id, notes, is_shared, is_takeaway)
            except IntegrityError:
                raise ConflictError(
                    "Cart is being updated concurrently, please retry",
                    session_id=session_id,
                    menu_item_id=menu_item_id,
                )

        line = change.line
        if client_price is not None and not money_equal(client_price, line.unit_price * line.quantity):
            # Client shows a stale price; the catalog price is authoritative
            logger.warning(
                "Client price differs from catalog price",
                order_item_id=line.id,
                client_price=str(client_price),
                expected=str(line.unit_price * line.quantity),
            )

        logger.info(
            "Cart item added" if change.created else "Cart item incremented",
            session_id=session_id,
            order_item_id=line.id,
            diner_name=diner_name,
            menu_item_id=menu_item_id,
            quantity=line.quantity,
        )
        return change

    def _add_once(
        self,
        session_id: int,
        diner_name: str,
        menu_item_id: int,
        notes: str | None,
        is_shared: bool,
        is_takeaway: bool,
    ) -> CartChange:
        session = self._sessions.get_active(session_id, lock=True)
        menu_item = self._menu.get_orderable(menu_item_id)
        if menu_item.price is None or menu_item.price <= 0:
            raise ValidationError(
                f"Menu item {menu_item_id} has no valid price",
                menu_item_id=menu_item_id,
            )

        line = self._db.scalar(
            select(OrderItem).where(
                OrderItem.session_id == session_id,
                OrderItem.diner_name == diner_name,
                OrderItem.menu_item_id == menu_item_id,
                OrderItem.is_shared.is_(is_shared),
                OrderItem.is_takeaway.is_(is_takeaway),
                OrderItem.status == OrderStatus.CART,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )

        created = line is None
        if line is None:
            line = OrderItem(
                session_id=session_id,
                menu_item_id=menu_item_id,
                diner_name=diner_name,
                quantity=1,
                notes=notes,
                is_shared=is_shared,
                is_takeaway=is_takeaway,
                status=OrderStatus.CART,
                unit_price=menu_item.price,
            )
            self._db.add(line)
        else:
            line.quantity = validate_quantity(line.quantity + 1)
            if notes is not None:
                line.notes = notes

        session.cart_version += 1
        safe_commit(self._db, "adding item to cart")
        return self._change(session, line, created=created, diner_name=diner_name)

    # =========================================================================
    # Update / Remove / Clear
    # =========================================================================

    def update_quantity(self, line_id: int, quantity: int) -> CartChange:
        """
        Set the quantity of a pending line. Zero or less removes it.

        Raises:
            OrderItemNotFoundError: unknown line
            InvalidStateError: line already confirmed
            ValidationError: quantity above the limit
        """
        if quantity <= 0:
            return self.remove_item(line_id)

        validate_quantity(quantity)
        session, line = self._lock_pending_line(line_id)
        line.quantity = quantity
        session.cart_version += 1
        safe_commit(self._db, "updating cart quantity")

        logger.info(
            "Cart item quantity updated",
            session_id=session.id,
            order_item_id=line_id,
            quantity=quantity,
        )
        return self._change(session, line, diner_name=line.diner_name)

    def remove_item(self, line_id: int) -> CartChange:
        """Delete a pending line."""
        session, line = self._lock_pending_line(line_id)
        diner_name = line.diner_name

        self._db.delete(line)
        session.cart_version += 1
        safe_commit(self._db, "removing cart item")

        logger.info("Cart item removed", session_id=session.id, order_item_id=line_id)
        return CartChange(
            session_id=session.id,
            cart_version=session.cart_version,
            removed_id=line_id,
            diner_name=diner_name,
        )

    def clear(self, session_id: int) -> CartChange:
        """
        Delete every line still in the cart for a session.
        Placed and confirmed lines are left untouched.
        """
        session = self._sessions.get(session_id, lock=True)
        result = self._db.execute(
            delete(OrderItem)
            .where(
                OrderItem.session_id == session_id,
                OrderItem.status == OrderStatus.CART,
            )
            .execution_options(synchronize_session="fetch")
        )
        session.cart_version += 1
        safe_commit(self._db, "clearing cart")

        removed = result.rowcount or 0
        logger.info("Cart cleared", session_id=session_id, removed_count=removed)
        return CartChange(
            session_id=session_id,
            cart_version=session.cart_version,
            removed_count=removed,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def list_items(self, session_id: int, diner_name: str | None = None) -> list[OrderItem]:
        """Pending lines of a session, optionally for one diner, oldest first."""
        self._sessions.get(session_id)
        stmt = (
            select(OrderItem)
            .options(selectinload(OrderItem.menu_item))
            .where(
                OrderItem.session_id == session_id,
                OrderItem.status.in_(OrderStatus.PENDING),
            )
            .order_by(OrderItem.id)
        )
        if diner_name is not None:
            stmt = stmt.where(OrderItem.diner_name == diner_name.strip())
        return list(self._db.scalars(stmt).all())

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lock_pending_line(self, line_id: int) -> tuple[TableSession, OrderItem]:
        """
        Lock the line's session, then re-read the line under that lock.

        The first read only finds the session. A confirmation committed
        before the lock was granted shows up in the second read, which
        overwrites whatever the identity map held.
        """
        line = self._db.get(OrderItem, line_id)
        if line is None:
            raise OrderItemNotFoundError(line_id)

        session = self._sessions.get(line.session_id, lock=True)
        line = self._db.get(OrderItem, line_id, with_for_update=True, populate_existing=True)
        if line is None:
            raise OrderItemNotFoundError(line_id)
        if not line.is_pending:
            raise InvalidStateError(
                "Order",
                line.status,
                list(OrderStatus.PENDING),
                order_item_id=line_id,
            )
        return session, line

    @staticmethod
    def _change(session: TableSession, line: OrderItem, created: bool = False, diner_name: str | None = None) -> CartChange:
        return CartChange(
            session_id=session.id,
            cart_version=session.cart_version,
            line=line,
            created=created,
            diner_name=diner_name,
        )

