"""
Tests for CartService domain service.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from rest_api.models import OrderItem
from rest_api.services.domain import CartService, OrderService, SessionService
from rest_api.services.domain import cart_service as cart_service_module
from shared.config.constants import OrderStatus
from shared.utils.exceptions import (
    ConflictError,
    InvalidStateError,
    MenuItemNotFoundError,
    OrderItemNotFoundError,
    SessionNotFoundError,
    ValidationError,
)


class TestCartAdd:
    """Adding items and coalescing lines."""

    def test_add_creates_line_with_catalog_price(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        change = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id)

        assert change.created is True
        assert change.line.quantity == 1
        assert change.line.status == OrderStatus.CART
        assert change.line.unit_price == Decimal("10.00")
        assert change.line.diner_name == "Ana"

    def test_same_item_twice_increments_quantity(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        first = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id)
        second = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id)

        assert second.created is False
        assert second.line.id == first.line.id
        assert second.line.quantity == 2
        assert db_session.query(OrderItem).count() == 1

    def test_different_flags_make_separate_lines(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        personal = service.add_item(table_session.id, "Ana", menu_items["parrillada"].id)
        shared = service.add_item(table_session.id, "Ana", menu_items["parrillada"].id, is_shared=True)

        assert personal.line.id != shared.line.id
        assert shared.line.is_shared is True

    def test_each_diner_gets_own_line(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        ana = service.add_item(table_session.id, "Ana", menu_items["pisco"].id)
        beto = service.add_item(table_session.id, "Beto", menu_items["pisco"].id)

        assert ana.line.id != beto.line.id

    def test_diner_name_is_trimmed_and_required(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        change = service.add_item(table_session.id, "  Ana  ", menu_items["pisco"].id)
        assert change.line.diner_name == "Ana"

        with pytest.raises(ValidationError):
            service.add_item(table_session.id, "   ", menu_items["pisco"].id)

    def test_every_mutation_bumps_cart_version(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        first = service.add_item(table_session.id, "Ana", menu_items["pisco"].id)
        second = service.add_item(table_session.id, "Ana", menu_items["pisco"].id)

        assert second.cart_version == first.cart_version + 1

    def test_unknown_session(self, db_session, menu_items):
        with pytest.raises(SessionNotFoundError):
            CartService(db_session).add_item(999, "Ana", menu_items["pisco"].id)

    def test_unknown_or_unavailable_menu_item(self, db_session, table_session, menu_items):
        service = CartService(db_session)

        with pytest.raises(MenuItemNotFoundError):
            service.add_item(table_session.id, "Ana", 999)
        with pytest.raises(MenuItemNotFoundError):
            service.add_item(table_session.id, "Ana", menu_items["off_menu"].id)

    def test_ended_session_rejects_additions(self, db_session, table_session, menu_items):
        SessionService(db_session).end(table_session.id)

        with pytest.raises(InvalidStateError):
            CartService(db_session).add_item(table_session.id, "Ana", menu_items["pisco"].id)

    def test_stale_client_price_is_accepted(self, db_session, table_session, menu_items):
        change = CartService(db_session).add_item(
            table_session.id, "Ana", menu_items["pisco"].id, client_price=Decimal("4.00")
        )

        assert change.line.unit_price == Decimal("5.50")


class TestCartUpdateAndRemove:
    """Quantity updates, removal and clearing."""

    def test_update_quantity(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        line = service.add_item(table_session.id, "Ana", menu_items["pisco"].id).line

        change = service.update_quantity(line.id, 4)

        assert change.line.quantity == 4

    def test_quantity_zero_removes_line(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        line_id = service.add_item(table_session.id, "Ana", menu_items["pisco"].id).line.id

        change = service.update_quantity(line_id, 0)

        assert change.line is None
        assert change.removed_id == line_id
        assert db_session.get(OrderItem, line_id) is None

    def test_negative_quantity_removes_line(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        line_id = service.add_item(table_session.id, "Ana", menu_items["pisco"].id).line.id

        service.update_quantity(line_id, -3)

        assert db_session.get(OrderItem, line_id) is None

    def test_quantity_above_limit_rejected(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        line_id = service.add_item(table_session.id, "Ana", menu_items["pisco"].id).line.id

        with pytest.raises(ValidationError):
            service.update_quantity(line_id, 1000)

    def test_update_unknown_line(self, db_session, table_session):
        with pytest.raises(OrderItemNotFoundError):
            CartService(db_session).update_quantity(12345, 2)

    def test_confirmed_line_cannot_change(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        line_id = service.add_item(table_session.id, "Ana", menu_items["pisco"].id).line.id
        OrderService(db_session).confirm(table_session.id)

        with pytest.raises(InvalidStateError):
            service.update_quantity(line_id, 3)
        with pytest.raises(InvalidStateError):
            service.remove_item(line_id)

    def test_clear_only_touches_cart_lines(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        service.add_item(table_session.id, "Ana", menu_items["pisco"].id)
        OrderService(db_session).confirm(table_session.id)
        service.add_item(table_session.id, "Ana", menu_items["empanadas"].id)
        service.add_item(table_session.id, "Beto", menu_items["empanadas"].id)

        change = service.clear(table_session.id)

        assert change.removed_count == 2
        remaining = db_session.query(OrderItem).all()
        assert len(remaining) == 1
        assert remaining[0].status == OrderStatus.WAITING

    def test_list_items_filters_by_diner(self, db_session, table_session, menu_items):
        service = CartService(db_session)
        service.add_item(table_session.id, "Ana", menu_items["pisco"].id)
        service.add_item(table_session.id, "Beto", menu_items["empanadas"].id)

        all_lines = service.list_items(table_session.id)
        beto_lines = service.list_items(table_session.id, "Beto")

        assert len(all_lines) == 2
        assert all(isinstance(line, OrderItem) for line in all_lines)
        assert [line.diner_name for line in beto_lines] == ["Beto"]


def _confirm_before_lock(monkeypatch, other_db_session):
    """Another request confirms the table just before this one locks the session."""
    original_get = SessionService.get
    confirmed = []

    def get(self, session_id, lock=False):
        if lock and not confirmed:
            confirmed.append(session_id)
            OrderService(other_db_session).confirm(session_id)
        return original_get(self, session_id, lock=lock)

    monkeypatch.setattr(SessionService, "get", get)
    return confirmed


class TestCartConcurrency:
    """A second request commits between this request's first read and its lock."""

    def test_update_after_concurrent_confirm_is_refused(
        self, db_session, other_db_session, table_session, menu_items, monkeypatch
    ):
        service = CartService(db_session)
        line_id = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id).line.id
        confirmed = _confirm_before_lock(monkeypatch, other_db_session)

        with pytest.raises(InvalidStateError):
            service.update_quantity(line_id, 7)

        assert confirmed == [table_session.id]
        line = db_session.get(OrderItem, line_id)
        db_session.refresh(line)
        assert line.status == OrderStatus.WAITING
        assert line.quantity == 1

    def test_remove_after_concurrent_confirm_is_refused(
        self, db_session, other_db_session, table_session, menu_items, monkeypatch
    ):
        service = CartService(db_session)
        line_id = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id).line.id
        _confirm_before_lock(monkeypatch, other_db_session)

        with pytest.raises(InvalidStateError):
            service.remove_item(line_id)

        line = db_session.get(OrderItem, line_id)
        db_session.refresh(line)
        assert line.status == OrderStatus.WAITING

    def test_add_racing_confirm_starts_new_cart_line(
        self, db_session, other_db_session, table_session, menu_items, monkeypatch
    ):
        service = CartService(db_session)
        first_id = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id).line.id
        _confirm_before_lock(monkeypatch, other_db_session)

        change = service.add_item(table_session.id, "Ana", menu_items["empanadas"].id)

        assert change.created is True
        assert change.line.id != first_id
        assert change.line.status == OrderStatus.CART
        # add, confirm, add: no version bump is lost
        assert change.cart_version == 3
        first = db_session.get(OrderItem, first_id)
        db_session.refresh(first)
        assert first.status == OrderStatus.WAITING
        assert first.quantity == 1

    def test_line_inserted_concurrently_is_incremented(
        self, db_session, other_db_session, table_session, menu_items, monkeypatch
    ):
        session_id = table_session.id
        menu_item_id = menu_items["empanadas"].id
        real_commit = cart_service_module.safe_commit
        inserted = []

        def commit_after_other_insert(db, operation="commit"):
            if operation == "adding item to cart" and not inserted:
                other_db_session.add(
                    OrderItem(
                        session_id=session_id,
                        menu_item_id=menu_item_id,
                        diner_name="Ana",
                        quantity=1,
                        is_shared=False,
                        is_takeaway=False,
                        status=OrderStatus.CART,
                        unit_price=Decimal("10.00"),
                    )
                )
                other_db_session.commit()
                inserted.append(operation)
            real_commit(db, operation)

        monkeypatch.setattr(cart_service_module, "safe_commit", commit_after_other_insert)

        change = CartService(db_session).add_item(session_id, "Ana", menu_item_id)

        assert inserted == ["adding item to cart"]
        assert change.created is False
        assert change.line.quantity == 2
        assert db_session.query(OrderItem).filter_by(diner_name="Ana").count() == 1

    def test_repeated_insert_race_is_a_conflict(self, db_session, table_session, menu_items, monkeypatch):
        def always_taken(db, operation="commit"):
            db.rollback()
            raise IntegrityError("INSERT INTO order_item", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(cart_service_module, "safe_commit", always_taken)

        with pytest.raises(ConflictError):
            CartService(db_session).add_item(table_session.id, "Ana", menu_items["empanadas"].id)
