"""
End-to-end tests through the REST API: a table orders, splits a dish,
the kitchen serves it, diners ask to pay and staff collect.
"""

import pytest

from shared.infrastructure.events import (
    CART_ITEM_ADDED,
    CART_ITEM_REMOVED,
    CART_ITEM_UPDATED,
    ORDERS_CONFIRMED,
    ORDER_STATUS_CHANGED,
    PAYMENT_COMPLETED,
    PAYMENT_READY,
    PAYMENT_REQUESTED,
    SPLIT_BILL_RESOLVED,
)


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions", json={"table_code": "T7", "diners": ["Ana", "Beto", "Carla"]})
    assert response.status_code == 201
    return response.json()["id"]


def _add(client, session_id, diner, menu_item_id, **extra):
    response = client.post(
        "/api/cart/add",
        json={"session_id": session_id, "diner_name": diner, "menu_item_id": menu_item_id, **extra},
    )
    assert response.status_code == 200, response.json()
    return response.json()


def _request_payment(client, session_id, diner):
    response = client.post("/api/bill/payment-request", json={"session_id": session_id, "diner_name": diner})
    assert response.status_code == 201, response.json()
    return response.json()["id"]


def _advance_to_served(client, order_id):
    for status in ("preparing", "ready", "served"):
        response = client.post("/api/orders/advance-status", json={"order_id": order_id, "status": status})
        assert response.status_code == 200, response.json()
    return response.json()


class TestSessions:

    def test_open_and_join(self, client, session_id):
        response = client.post(f"/api/sessions/{session_id}/diners", json={"name": "Dani"})
        assert response.status_code == 201

        again = client.post(f"/api/sessions/{session_id}/diners", json={"name": " Dani "})
        assert again.status_code == 200
        assert again.json()["id"] == response.json()["id"]

        session = client.get(f"/api/sessions/{session_id}").json()
        assert [d["name"] for d in session["diners"]] == ["Ana", "Beto", "Carla", "Dani"]
        assert session["status"] == "active"

    def test_end_session(self, client, session_id, menu_items):
        response = client.post(f"/api/sessions/{session_id}/end")
        assert response.status_code == 200
        assert response.json()["status"] == "ended"

        blocked = client.post(
            "/api/cart/add",
            json={"session_id": session_id, "diner_name": "Ana", "menu_item_id": menu_items["pisco"].id},
        )
        assert blocked.status_code == 400

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/999").status_code == 404


class TestMenu:

    def test_only_available_items(self, client, menu_items):
        names = [item["name"] for item in client.get("/api/menu").json()]

        assert "Centolla" not in names
        assert names == sorted(names)


class TestCartApi:

    def test_add_coalesces(self, client, session_id, menu_items, publisher):
        first = _add(client, session_id, "Ana", menu_items["empanadas"].id)
        second = _add(client, session_id, "Ana", menu_items["empanadas"].id)

        assert first["created"] is True
        assert second["created"] is False
        assert second["item"]["id"] == first["item"]["id"]
        assert second["item"]["quantity"] == 2
        assert second["item"]["line_total"] == 20.0
        assert second["cart_version"] > first["cart_version"]
        assert publisher.types() == [CART_ITEM_ADDED, CART_ITEM_UPDATED]
        assert publisher.channels_for(CART_ITEM_ADDED) == [f"session:{session_id}"]

    def test_update_to_zero_removes(self, client, session_id, menu_items, publisher):
        item_id = _add(client, session_id, "Ana", menu_items["pisco"].id)["item"]["id"]

        response = client.post("/api/cart/update-quantity", json={"cart_item_id": item_id, "quantity": 0})

        assert response.status_code == 200
        assert response.json()["removed"] is True
        assert response.json()["item"] is None
        assert client.get("/api/cart", params={"session_id": session_id}).json()["items"] == []
        assert publisher.types()[-1] == CART_ITEM_REMOVED

    def test_remove_and_clear(self, client, session_id, menu_items):
        item_id = _add(client, session_id, "Ana", menu_items["pisco"].id)["item"]["id"]
        _add(client, session_id, "Beto", menu_items["pisco"].id)
        _add(client, session_id, "Carla", menu_items["empanadas"].id)

        removed = client.post("/api/cart/remove", json={"cart_item_id": item_id})
        assert removed.json()["removed_id"] == item_id

        cleared = client.post("/api/cart/clear", json={"session_id": session_id})
        assert cleared.json()["removed_count"] == 2

    def test_list_for_one_diner(self, client, session_id, menu_items):
        _add(client, session_id, "Ana", menu_items["pisco"].id)
        _add(client, session_id, "Beto", menu_items["empanadas"].id)

        cart = client.get("/api/cart", params={"session_id": session_id, "diner_name": "Beto"}).json()

        assert [item["diner_name"] for item in cart["items"]] == ["Beto"]
        assert cart["version"] >= 2

    def test_unknown_line(self, client, session_id):
        response = client.post("/api/cart/remove", json={"cart_item_id": 4242})
        assert response.status_code == 404

    def test_non_json_body_rejected(self, client, session_id):
        response = client.post(
            "/api/cart/clear",
            content="session_id=1",
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 415


class TestSharedDinner:
    """The whole flow for a dish split three ways."""

    def test_split_confirm_serve_and_pay(self, client, session_id, menu_items, publisher):
        parrillada = menu_items["parrillada"].id
        shared_line = _add(client, session_id, "Ana", parrillada, is_shared=True)["item"]["id"]
        empanadas_line = _add(client, session_id, "Ana", menu_items["empanadas"].id)["item"]["id"]

        split = client.post(
            "/api/splits/create-or-reuse",
            json={
                "session_id": session_id,
                "menu_item_id": parrillada,
                "original_price": "135",
                "split_count": 3,
                "participants": ["Ana", "Beto", "Carla"],
            },
        )
        assert split.status_code == 200
        split_body = split.json()
        assert split_body["created"] is True
        assert split_body["linked_count"] == 1
        assert split_body["split_bill"]["split_price"] == 45.0

        reused = client.post(
            "/api/splits/create-or-reuse",
            json={
                "session_id": session_id,
                "menu_item_id": parrillada,
                "original_price": "135.00",
                "split_count": 3,
                "participants": ["Carla", "Beto", "Ana"],
            },
        )
        assert reused.json()["created"] is False
        assert reused.json()["split_bill"]["id"] == split_body["split_bill"]["id"]

        confirm = client.post("/api/orders/confirm", json={"session_id": session_id})
        assert confirm.status_code == 200
        assert confirm.json()["confirmed_order_ids"] == [shared_line, empanadas_line]
        assert publisher.channels_for(ORDERS_CONFIRMED) == [f"session:{session_id}", "kitchen", "staff"]

        early = client.post("/api/bill/payment-request", json={"session_id": session_id, "diner_name": "Beto"})
        assert early.status_code == 400

        assert _advance_to_served(client, empanadas_line)["payment_ready"] is False

        kitchen = client.get("/api/kitchen/orders").json()
        assert len(kitchen) == 1
        assert kitchen[0]["split_price"] == 45.0
        assert kitchen[0]["split_participants"] == ["Ana", "Beto", "Carla"]

        served = _advance_to_served(client, shared_line)
        assert served["payment_ready"] is True
        assert served["order"]["status"] == "served"
        assert PAYMENT_READY in publisher.types()
        assert publisher.types().count(ORDER_STATUS_CHANGED) == 6

        share = client.get("/api/bill/my-share", params={"session_id": session_id, "diner_name": "Beto"}).json()
        assert share == {"session_id": session_id, "diner_name": "Beto", "subtotal": 45.0, "vat": 6.3, "total": 51.3}

        table = client.get("/api/bill/table-total", params={"session_id": session_id}).json()
        assert table["subtotal"] == 55.0
        assert table["order_count"] == 2

        per_diner = client.get("/api/bill/per-diner", params={"session_id": session_id}).json()
        assert [d["diner_name"] for d in per_diner["diners"]] == ["Ana", "Beto", "Carla"]
        assert all(d["shared_subtotal"] == 45.0 for d in per_diner["diners"])
        assert per_diner["diners"][0]["personal_subtotal"] == 10.0
        assert per_diner["table"]["subtotal"] == 55.0

        payment = client.post(
            "/api/bill/payment-request",
            json={"session_id": session_id, "diner_name": "Beto", "tip_amount": "5"},
        )
        assert payment.status_code == 201
        assert payment.json()["payment_type"] == "individual"
        assert payment.json()["final_total"] == 56.3
        assert publisher.channels_for(PAYMENT_REQUESTED) == [f"session:{session_id}", "staff"]
        assert SPLIT_BILL_RESOLVED in publisher.types()

    def test_skipping_a_step_is_rejected(self, client, session_id, menu_items):
        order_id = _add(client, session_id, "Ana", menu_items["pisco"].id)["item"]["id"]
        client.post("/api/orders/confirm", json={"session_id": session_id})

        response = client.post("/api/orders/advance-status", json={"order_id": order_id, "status": "served"})

        assert response.status_code == 400
        confirmed = client.get("/api/orders/confirmed", params={"session_id": session_id}).json()
        assert confirmed[0]["status"] == "waiting"

    def test_confirm_empty_cart(self, client, session_id):
        response = client.post("/api/orders/confirm", json={"session_id": session_id})

        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_invalid_split_request(self, client, session_id, menu_items):
        response = client.post(
            "/api/splits/create-or-reuse",
            json={
                "session_id": session_id,
                "menu_item_id": menu_items["parrillada"].id,
                "original_price": "135",
                "split_count": 0,
                "participants": ["Ana"],
            },
        )
        assert response.status_code == 400

    def test_split_count_over_limit(self, client, session_id, menu_items):
        response = client.post(
            "/api/splits/create-or-reuse",
            json={
                "session_id": session_id,
                "menu_item_id": menu_items["parrillada"].id,
                "original_price": "135",
                "split_count": 51,
                "participants": ["Ana"],
            },
        )
        assert response.status_code == 400


class TestPaymentApi:
    """Staff collect payment requests until the table is settled."""

    @pytest.fixture
    def served_session(self, client, session_id, menu_items):
        for diner, item in (("Ana", "empanadas"), ("Beto", "pisco")):
            order_id = _add(client, session_id, diner, menu_items[item].id)["item"]["id"]
            client.post("/api/orders/confirm", json={"session_id": session_id})
            _advance_to_served(client, order_id)
        return session_id

    def test_collect_every_diner(self, client, served_session, publisher):
        ana = _request_payment(client, served_session, "Ana")
        beto = _request_payment(client, served_session, "Beto")

        first = client.post(
            "/api/bill/payment-complete",
            json={"payment_request_id": ana, "payment_method": "cash", "completed_by": "Rosa"},
        )
        assert first.status_code == 200
        assert first.json()["payment_request"]["status"] == "completed"
        assert first.json()["payment_request"]["payment_method"] == "cash"
        assert first.json()["session_ended"] is False
        assert publisher.channels_for(PAYMENT_COMPLETED) == [f"session:{served_session}", "staff"]

        status = client.get("/api/bill/payment-status", params={"session_id": served_session}).json()
        assert status["paid_diners"] == 1
        assert status["remaining_diners"] == 1
        assert status["all_paid"] is False
        assert status["latest_request"]["id"] == beto

        last = client.post(
            "/api/bill/payment-complete",
            json={"payment_request_id": beto, "payment_method": "card", "completed_by": "Rosa"},
        )
        assert last.json()["session_ended"] is True

        status = client.get("/api/bill/payment-status", params={"session_id": served_session}).json()
        assert status["all_paid"] is True
        assert status["session_status"] == "ended"
        assert publisher.types().count(PAYMENT_COMPLETED) == 2

    def test_repeat_is_not_published_again(self, client, served_session, publisher):
        ana = _request_payment(client, served_session, "Ana")
        body = {"payment_request_id": ana, "payment_method": "qr_code", "completed_by": "Rosa"}
        client.post("/api/bill/payment-complete", json=body)

        again = client.post("/api/bill/payment-complete", json=body)

        assert again.status_code == 200
        assert again.json()["already_completed"] is True
        assert publisher.types().count(PAYMENT_COMPLETED) == 1

    def test_unknown_method_rejected(self, client, served_session):
        ana = _request_payment(client, served_session, "Ana")

        response = client.post(
            "/api/bill/payment-complete",
            json={"payment_request_id": ana, "payment_method": "cheque", "completed_by": "Rosa"},
        )

        assert response.status_code == 400

    def test_unknown_request(self, client, session_id):
        response = client.post(
            "/api/bill/payment-complete",
            json={"payment_request_id": 999, "payment_method": "cash", "completed_by": "Rosa"},
        )

        assert response.status_code == 404
