"""
Unit tests for FastAPI endpoints.

Tests all API endpoints using TestClient against an in-memory SQLite
session and an in-process notification registry.
"""

import json
import logging
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from conftest import BUYER, OTHER, OWNER, RENTER, SUPPLIER, RecordingRegistry
from farmhub.api.dependencies import get_dispatcher, get_equipment_catalog
from farmhub.api.main import app
from farmhub.api.middleware import ANONYMOUS, caller_identity
from farmhub.database import get_db
from farmhub.notifications import EventType, InMemoryNotificationRegistry, NotificationDispatcher, make_event


def _day(offset: int) -> str:
    return (date.today() + timedelta(days=offset)).isoformat()


def _as(user_id: str) -> dict:
    return {"X-User-ID": user_id}


@pytest.fixture
def api_registry():
    return RecordingRegistry()


@pytest.fixture
def client(db_session, api_registry):
    """TestClient with the database and dispatcher overridden."""

    def override_get_db():
        yield db_session

    dispatcher = NotificationDispatcher(api_registry)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def equipment_id(client) -> str:
    response = client.post(
        "/equipment",
        json={"name": "John Deere 5050D", "type": "tractor", "pricePerDay": 2000, "description": "50 HP"},
        headers=_as(OWNER),
    )
    assert response.status_code == 201
    return response.json()["equipment"]["id"]


@pytest.fixture
def supply_id(client) -> str:
    response = client.post(
        "/supplies",
        json={"name": "DAP Fertilizer", "category": "fertilizers", "quantity": 10, "price": 1350, "unit": "bag"},
        headers=_as(SUPPLIER),
    )
    assert response.status_code == 201
    return response.json()["supply"]["id"]


def _book(client, equipment_id, start, end, user=RENTER):
    return client.post(
        "/bookings",
        json={"equipmentId": equipment_id, "startDate": _day(start), "endDate": _day(end)},
        headers=_as(user),
    )


class TestHealthEndpoint:

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ("healthy", "unhealthy")
        assert data["notificationBackend"] == "memory"

    def test_request_id_header(self, client):
        response = client.get("/health")

        assert "X-Request-ID" in response.headers
        assert "no-store" in response.headers["Cache-Control"]


class TestRequestLogging:
    """Test that request logs carry the caller identity."""

    def test_logs_caller(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="farmhub.api.middleware"):
            client.get("/health", headers=_as(OWNER))

        messages = [r.getMessage() for r in caplog.records if r.name == "farmhub.api.middleware"]
        assert any(f"GET /health as {OWNER}" in m for m in messages)
        assert all(r.caller == OWNER for r in caplog.records if r.name == "farmhub.api.middleware")

    def test_rejected_request_logged_as_warning(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="farmhub.api.middleware"):
            client.post("/equipment", json={"name": "Plough", "type": "plough", "pricePerDay": 300})

        warnings = [r for r in caplog.records if r.name == "farmhub.api.middleware" and r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].caller == ANONYMOUS
        assert warnings[0].status_code == 401

    @pytest.mark.parametrize("headers,expected", [
        ([(b"x-user-id", b" owner-1 ")], "owner-1"),
        ([(b"cookie", b"user_id=renter-1")], "renter-1"),
        ([(b"x-user-id", b"   ")], ANONYMOUS),
        ([], ANONYMOUS),
    ])
    def test_caller_identity(self, headers, expected):
        request = Request({"type": "http", "method": "GET", "path": "/", "headers": headers})

        assert caller_identity(request) == expected


    def test_database_error_logged_with_caller(self, client, caplog):
        class BrokenCatalog:
            def list_by_owner(self, owner_id):
                raise OperationalError("SELECT", {}, Exception("password=secret"))

        app.dependency_overrides[get_equipment_catalog] = lambda: BrokenCatalog()

        with caplog.at_level(logging.ERROR, logger="farmhub.api.main"):
            response = client.get("/equipment/mine", headers=_as(OWNER))

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"
        assert "secret" not in response.text
        assert any(f"Database error for {OWNER}" in r.getMessage() for r in caplog.records)


class ClosingRegistry(InMemoryNotificationRegistry):
    """Queues one event on each new channel, then closes it as a replacing stream would."""

    async def register(self, user_id, channel):
        await super().register(user_id, channel)
        channel.deliver(make_event(EventType.NEW_BOOKING, "New booking request"))
        channel.close()


class TestNotificationStream:
    """Test GET /bookings/stream over HTTP."""

    @pytest.fixture
    def stream_registry(self, client):
        registry = ClosingRegistry()
        app.dependency_overrides[get_dispatcher] = lambda: NotificationDispatcher(registry)
        return registry

    def test_requires_identity(self, client):
        response = client.get("/bookings/stream")

        assert response.status_code == 401

    def test_connected_frame_then_events(self, client, stream_registry):
        response = client.get("/bookings/stream", headers=_as(RENTER))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["Cache-Control"] == "no-cache"

        frames = [f for f in response.text.split("\n\n") if f]
        events = [json.loads(f[len("data: "):]) for f in frames]
        assert [e["type"] for e in events] == ["connected", "new_booking"]
        assert events[1]["message"] == "New booking request"

    def test_stream_unregisters_on_close(self, client, stream_registry):
        client.get("/bookings/stream", headers=_as(RENTER))

        assert RENTER not in stream_registry


class TestEquipmentEndpoints:

    def test_create_requires_identity(self, client):
        response = client.post("/equipment", json={"name": "Plough", "type": "plough", "pricePerDay": 300})

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_create_and_fetch(self, client, equipment_id):
        response = client.get(f"/equipment/{equipment_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "tractor"
        assert body["ownerId"] == OWNER
        assert body["available"] is True

    def test_listings(self, client, equipment_id):
        assert client.get("/equipment").json()["count"] == 1
        assert client.get("/equipment/mine", headers=_as(OWNER)).json()["count"] == 1
        assert client.get("/equipment/mine", headers=_as(OTHER)).json()["count"] == 0

    def test_cookie_identity(self, client, equipment_id):
        client.cookies.set("user_id", OWNER)
        response = client.get("/equipment/mine")
        client.cookies.clear()

        assert response.json()["count"] == 1

    def test_unknown_equipment(self, client):
        response = client.get("/equipment/00000000-0000-0000-0000-000000000001")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_availability_lookup(self, client, equipment_id):
        _book(client, equipment_id, 30, 34)

        busy = client.get(
            f"/equipment/{equipment_id}/availability",
            params={"startDate": _day(32), "endDate": _day(36)},
        ).json()["data"]
        free = client.get(
            f"/equipment/{equipment_id}/availability",
            params={"startDate": _day(35), "endDate": _day(37)},
        ).json()["data"]

        assert busy["available"] is False
        assert busy["reason"] == "booking_conflict"
        assert free["available"] is True


class TestBookingEndpoints:
    """Test the booking lifecycle over HTTP."""

    def test_create_booking(self, client, equipment_id, api_registry):
        response = _book(client, equipment_id, 30, 34)

        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["status"] == "pending"
        assert booking["requesterId"] == RENTER
        assert api_registry.types_for(OWNER) == ["booking_created", "new_booking"]

    def test_conflict_returns_409(self, client, equipment_id):
        _book(client, equipment_id, 30, 34)

        response = _book(client, equipment_id, 34, 37, user=OTHER)

        assert response.status_code == 409
        assert response.json()["message"] == "Date conflict detected"

    def test_past_dates_return_400(self, client, equipment_id):
        response = _book(client, equipment_id, -3, 2)

        assert response.status_code == 400
        assert response.json()["message"] == "Start date cannot be in the past"

    def test_missing_fields_return_400(self, client):
        response = client.post("/bookings", json={"startDate": _day(3)}, headers=_as(RENTER))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_approve_and_complete(self, client, equipment_id):
        booking_id = _book(client, equipment_id, 30, 34).json()["booking"]["id"]

        approved = client.patch(f"/bookings/{booking_id}/approve", headers=_as(OWNER))
        completed = client.patch(f"/bookings/{booking_id}/complete", headers=_as(OWNER))

        assert approved.json()["booking"]["status"] == "approved"
        assert completed.json()["booking"]["status"] == "completed"
        assert client.get(f"/equipment/{equipment_id}").json()["available"] is True

    def test_decline_maps_to_rejected(self, client, equipment_id):
        booking_id = _book(client, equipment_id, 30, 34).json()["booking"]["id"]

        response = client.patch(f"/bookings/{booking_id}/decline", headers=_as(OWNER))

        assert response.status_code == 200
        assert response.json()["booking"]["status"] == "rejected"

    def test_wrong_party_returns_403(self, client, equipment_id):
        booking_id = _book(client, equipment_id, 30, 34).json()["booking"]["id"]

        assert client.patch(f"/bookings/{booking_id}/approve", headers=_as(RENTER)).status_code == 403
        assert client.patch(f"/bookings/{booking_id}/cancel", headers=_as(OWNER)).status_code == 403

    def test_cancel_completed_returns_400(self, client, equipment_id):
        booking_id = _book(client, equipment_id, 30, 34).json()["booking"]["id"]
        client.patch(f"/bookings/{booking_id}/approve", headers=_as(OWNER))
        client.patch(f"/bookings/{booking_id}/complete", headers=_as(OWNER))

        response = client.patch(f"/bookings/{booking_id}/cancel", headers=_as(RENTER))

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_transition"

    def test_delete_booking(self, client, equipment_id):
        booking_id = _book(client, equipment_id, 30, 34).json()["booking"]["id"]

        assert client.delete(f"/bookings/{booking_id}", headers=_as(OTHER)).status_code == 403
        assert client.delete(f"/bookings/{booking_id}", headers=_as(RENTER)).status_code == 200
        assert client.delete(f"/bookings/{booking_id}", headers=_as(RENTER)).status_code == 404

    def test_booking_queries(self, client, equipment_id):
        _book(client, equipment_id, 30, 34)

        assert client.get("/bookings/user", headers=_as(RENTER)).json()["count"] == 1
        assert client.get("/bookings/owner", headers=_as(OWNER)).json()["count"] == 1
        assert client.get(f"/bookings/equipment/{equipment_id}").json()["count"] == 1


class TestMaintenanceEndpoints:

    def test_schedule_blocks_booking(self, client, equipment_id):
        response = client.post(
            "/maintenance/schedule",
            json={"equipmentId": equipment_id, "type": "repair", "scheduledDate": _day(32)},
            headers=_as(OWNER),
        )
        assert response.status_code == 201
        window = response.json()["data"]
        assert window["status"] == "scheduled"

        conflict = _book(client, equipment_id, 30, 34)
        assert conflict.status_code == 409
        assert conflict.json()["message"] == "Maintenance conflict detected"

        client.put(f"/maintenance/{window['id']}/status", json={"status": "cancelled"}, headers=_as(OWNER))
        assert _book(client, equipment_id, 30, 34).status_code == 201

    def test_schedule_by_non_owner(self, client, equipment_id):
        response = client.post(
            "/maintenance/schedule",
            json={"equipmentId": equipment_id, "type": "routine", "scheduledDate": _day(5)},
            headers=_as(OTHER),
        )

        assert response.status_code == 403

    def test_schedule_missing_fields(self, client, equipment_id):
        response = client.post(
            "/maintenance/schedule",
            json={"equipmentId": equipment_id},
            headers=_as(OWNER),
        )

        assert response.status_code == 400

    def test_status_update_and_records(self, client, equipment_id):
        window_id = client.post(
            "/maintenance/schedule",
            json={"equipmentId": equipment_id, "type": "routine", "scheduledDate": _day(5)},
            headers=_as(OWNER),
        ).json()["data"]["id"]

        response = client.put(
            f"/maintenance/{window_id}/status",
            json={"status": "in-progress", "technician": "Suresh"},
            headers=_as(OWNER),
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "in_progress"
        records = client.get("/maintenance/records", params={"status": "in_progress"}, headers=_as(OWNER))
        assert len(records.json()["data"]) == 1


class TestSupplyEndpoints:
    """Test the supply marketplace over HTTP."""

    def test_order_and_cancel(self, client, supply_id, api_registry):
        order = client.post(f"/supplies/{supply_id}/order", json={"quantity": 3}, headers=_as(BUYER))
        assert order.status_code == 201
        order_id = order.json()["order"]["id"]
        assert client.get(f"/supplies/{supply_id}").json()["availableQuantity"] == 7

        too_many = client.post(f"/supplies/{supply_id}/order", json={"quantity": 8}, headers=_as(BUYER))
        assert too_many.status_code == 400
        assert too_many.json()["error"] == "insufficient_stock"

        for _ in range(2):
            cancelled = client.put(
                f"/supplies/orders/{order_id}/status", json={"status": "cancelled"}, headers=_as(SUPPLIER),
            )
            assert cancelled.status_code == 200
        assert client.get(f"/supplies/{supply_id}").json()["availableQuantity"] == 10
        assert "supply_order_updated" in api_registry.types_for(BUYER)

    def test_buyer_cannot_update_order(self, client, supply_id):
        order_id = client.post(
            f"/supplies/{supply_id}/order", json={"quantity": 1}, headers=_as(BUYER),
        ).json()["order"]["id"]

        response = client.put(f"/supplies/orders/{order_id}/status", json={"status": "shipped"}, headers=_as(BUYER))

        assert response.status_code == 403

    def test_zero_quantity_rejected(self, client, supply_id):
        response = client.post(f"/supplies/{supply_id}/order", json={"quantity": 0}, headers=_as(BUYER))

        assert response.status_code == 400

    def test_update_quantity(self, client, supply_id):
        client.post(f"/supplies/{supply_id}/order", json={"quantity": 4}, headers=_as(BUYER))

        shrink = client.put(f"/supplies/{supply_id}/quantity", json={"quantity": 2}, headers=_as(SUPPLIER))
        restock = client.put(f"/supplies/{supply_id}/quantity", json={"quantity": 20}, headers=_as(SUPPLIER))

        assert shrink.status_code == 400
        assert shrink.json()["error"] == "invalid_quantity"
        assert restock.json()["supply"]["availableQuantity"] == 16

    def test_inventory_summary_and_orders(self, client, supply_id):
        client.post(f"/supplies/{supply_id}/order", json={"quantity": 7}, headers=_as(BUYER))

        summary = client.get("/supplies/inventory/summary", headers=_as(SUPPLIER)).json()["data"]
        assert summary["totalSupplies"] == 1
        assert summary["lowStockSupplies"] == 1
        assert summary["totalValue"] == 3 * 1350

        assert client.get("/supplies/orders", params={"role": "buyer"}, headers=_as(BUYER)).json()["count"] == 1
        assert client.get("/supplies/orders", headers=_as(SUPPLIER)).json()["count"] == 1
        assert client.get("/supplies/mine", headers=_as(SUPPLIER)).json()["count"] == 1
