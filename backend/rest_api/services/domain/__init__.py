"""
Domain Services.

Routers stay thin: they parse the request, call one service method and
build the response. Services hold the business rules and own the commit.

Usage:
    from rest_api.services.domain import CartService

    service = CartService(db)
    change = service.add_item(session_id, "Ana", menu_item_id)
"""

from .session_service import SessionService
from .menu_service import MenuService
from .cart_service import CartService, CartChange
from .split_service import SplitService, SplitResolution
from .order_service import OrderService, StatusChange
from .bill_service import (
    BillService,
    BillLine,
    BillTotals,
    DinerBill,
    DinerPayment,
    PaymentCompletion,
    PaymentStatus,
    compute_diner_share,
    compute_table_total,
    compute_per_diner_breakdown,
    compute_diner_payments,
)

__all__ = [
    "SessionService",
    "MenuService",
    "CartService",
    "CartChange",
    "SplitService",
    "SplitResolution",
    "OrderService",
    "StatusChange",
    "BillService",
    "BillLine",
    "BillTotals",
    "DinerBill",
    "DinerPayment",
    "PaymentCompletion",
    "PaymentStatus",
    "compute_diner_share",
    "compute_table_total",
    "compute_per_diner_breakdown",
    "compute_diner_payments",
]
