"""
Seed data for development and testing.
Creates a small demo menu so a session can be opened and ordered from
straight away.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import MenuItem
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit

logger = get_logger(__name__)


DEMO_MENU = [
    {"name": "Empanadas de pino (x3)", "price": Decimal("8500")},
    {"name": "Tabla de quesos", "price": Decimal("13500")},
    {"name": "Pastel de choclo", "price": Decimal("11900")},
    {"name": "Parrillada para compartir", "price": Decimal("32000")},
    {"name": "Ensalada chilena", "price": Decimal("4500")},
    {"name": "Papas fritas", "price": Decimal("4900")},
    {"name": "Mote con huesillo", "price": Decimal("3500")},
    {"name": "Pisco sour", "price": Decimal("5900")},
    {"name": "Jugo natural", "price": Decimal("3200")},
    {"name": "Agua mineral", "price": Decimal("2000")},
]


def seed(db: Session) -> int:
    """
    Insert the demo menu.
    Idempotent: does nothing if any menu item exists. Returns the number of items added.
    """
    if db.scalar(select(MenuItem.id).limit(1)):
        logger.info("Menu already seeded, skipping")
        return 0

    for item_data in DEMO_MENU:
        db.add(MenuItem(is_available=True, **item_data))
    safe_commit(db, "seeding menu")

    logger.info("Menu seeded", count=len(DEMO_MENU))
    return len(DEMO_MENU)
