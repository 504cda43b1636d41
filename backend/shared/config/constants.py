"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import OrderStatus, ORDER_TRANSITIONS

    if line.status in OrderStatus.PENDING:
        ...
"""

from typing import Final


# =============================================================================
# Entity Status Constants
# =============================================================================


class OrderStatus:
    """
    Order line status constants.

    A single row moves through the whole lifecycle:
    cart → placed → waiting → preparing → ready → served
    """

    CART: Final[str] = "cart"  # In a diner's cart
    PLACED: Final[str] = "placed"  # Diner finished choosing, awaiting table confirmation
    WAITING: Final[str] = "waiting"  # Confirmed, queued for the kitchen
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"  # Terminal, eligible for payment

    # Status groups
    PENDING: Final[tuple[str, ...]] = (CART, PLACED)
    CONFIRMED: Final[tuple[str, ...]] = (WAITING, PREPARING, READY, SERVED)
    KITCHEN_ACTIVE: Final[tuple[str, ...]] = (WAITING, PREPARING, READY)
    ALL: Final[tuple[str, ...]] = (CART, PLACED, WAITING, PREPARING, READY, SERVED)


class SessionStatus:
    """Table session status constants."""

    ACTIVE: Final[str] = "active"
    ENDED: Final[str] = "ended"


class SplitStatus:
    """Split bill status constants."""

    ACTIVE: Final[str] = "active"
    SUPERSEDED: Final[str] = "superseded"  # No longer current and no order references it


class PaymentType:
    """Payment request classification."""

    INDIVIDUAL: Final[str] = "individual"
    TABLE: Final[str] = "table"


class PaymentRequestStatus:
    """Payment request status constants."""

    PENDING: Final[str] = "pending"
    COMPLETED: Final[str] = "completed"


class PaymentMethod:
    """How a payment request was settled."""

    CASH: Final[str] = "cash"
    CARD: Final[str] = "card"
    QR_CODE: Final[str] = "qr_code"
    DIGITAL: Final[str] = "digital"

    ALL: Final[tuple[str, ...]] = (CASH, CARD, QR_CODE, DIGITAL)


# =============================================================================
# Status Transitions
# =============================================================================

# Valid kitchen transitions (from -> allowed next state).
# Strictly forward, one step at a time. Pending lines enter the kitchen
# only through confirmation, never through a transition request.
ORDER_TRANSITIONS: Final[dict[str, str | None]] = {
    OrderStatus.WAITING: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.SERVED,
    OrderStatus.SERVED: None,  # Terminal state
}


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Quantity limits
    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 100
    MAX_NOTES_LENGTH: Final[int] = 500

    # Split bills
    MAX_PARTICIPANTS: Final[int] = 20
    MAX_SPLIT_COUNT: Final[int] = 50  # Portions, may exceed the participants present
