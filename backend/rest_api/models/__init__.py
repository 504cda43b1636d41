"""
SQLAlchemy ORM Models Package.

- base: Base class, TimestampMixin, BigIntPK
- table: TableSession, Diner
- catalog: MenuItem
- order: OrderItem (cart lines and confirmed orders)
- split: SplitBill
- billing: PaymentRequest
"""

from .base import Base, BigIntPK, TimestampMixin
from .table import TableSession, Diner
from .catalog import MenuItem
from .split import SplitBill
from .order import OrderItem
from .billing import PaymentRequest

__all__ = [
    "Base",
    "BigIntPK",
    "TimestampMixin",
    "TableSession",
    "Diner",
    "MenuItem",
    "SplitBill",
    "OrderItem",
    "PaymentRequest",
]
