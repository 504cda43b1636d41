"""
Diner routers - /api/cart, /api/splits, /api/orders, /api/bill
Operations performed from a diner's phone at the table.
"""

from .cart import router as cart_router
from .splits import router as splits_router
from .orders import router as orders_router
from .bill import router as bill_router

__all__ = ["cart_router", "splits_router", "orders_router", "bill_router"]
