"""
Menu Domain Service.

Read-only lookups against the menu catalog.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.utils.exceptions import MenuItemNotFoundError
from rest_api.models import MenuItem


class MenuService:
    """Domain service for MenuItem lookups."""

    def __init__(self, db: Session):
        self._db = db

    def list_available(self) -> list[MenuItem]:
        return list(
            self._db.scalars(
                select(MenuItem)
                .where(MenuItem.is_available.is_(True))
                .order_by(MenuItem.name, MenuItem.id)
            ).all()
        )

    def get(self, menu_item_id: int) -> MenuItem:
        """Get a menu item whether or not it is currently available."""
        item = self._db.get(MenuItem, menu_item_id)
        if item is None:
            raise MenuItemNotFoundError(menu_item_id)
        return item

    def get_orderable(self, menu_item_id: int) -> MenuItem:
        """Get a menu item that can be added to a cart right now."""
        item = self.get(menu_item_id)
        if not item.is_available:
            raise MenuItemNotFoundError(menu_item_id, reason="unavailable")
        return item
