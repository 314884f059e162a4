"""
Unit tests for supply orders.

Covers stock conservation across placement and cancellation, restore
idempotence and who may drive an order's status.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from conftest import BUYER, OTHER, SUPPLIER
from farmhub.errors import ForbiddenError, InsufficientStockError, InvalidTransition, NotFoundError, ValidationError
from farmhub.services import SupplyOrderService


class TestPlaceOrder:
    """Test order placement against finite stock."""

    @pytest.mark.asyncio
    async def test_order_reserves_stock(self, orders_service, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=3, delivery_address="Village Rd")

        assert order.status == "pending"
        assert order.supplier_id == SUPPLIER
        assert order.total_price == 360.0
        assert order.original_supply_quantity == 10
        assert order.remaining_supply_quantity == 7
        assert seeds.available_quantity == 7

    @pytest.mark.asyncio
    async def test_oversized_order_leaves_stock_untouched(self, orders_service, seeds):
        await orders_service.place_order(seeds.id, BUYER, quantity=3)

        with pytest.raises(InsufficientStockError) as exc:
            await orders_service.place_order(seeds.id, BUYER, quantity=8)
        assert exc.value.status_code == 400
        assert "Only 7 kg(s) available" in exc.value.message
        assert seeds.available_quantity == 7

    @pytest.mark.asyncio
    async def test_sold_out_supply(self, orders_service, seeds):
        await orders_service.place_order(seeds.id, BUYER, quantity=10)

        with pytest.raises(InsufficientStockError, match="Supply is not available"):
            await orders_service.place_order(seeds.id, BUYER, quantity=1)

    @pytest.mark.asyncio
    async def test_quantity_must_be_positive(self, orders_service, seeds):
        with pytest.raises(ValidationError):
            await orders_service.place_order(seeds.id, BUYER, quantity=0)

    @pytest.mark.asyncio
    async def test_unknown_supply(self, orders_service):
        with pytest.raises(NotFoundError, match="Supply not found"):
            await orders_service.place_order(uuid.uuid4(), BUYER)

    @pytest.mark.asyncio
    async def test_failed_insert_releases_reservation(self, inventory, seeds):
        orders = MagicMock()
        orders.add.side_effect = RuntimeError("insert failed")
        service = SupplyOrderService(inventory, orders)

        with pytest.raises(RuntimeError):
            await service.place_order(seeds.id, BUYER, quantity=4)
        assert seeds.available_quantity == 10

    @pytest.mark.asyncio
    async def test_notifies_supplier_and_buyer(self, orders_service, registry, seeds):
        await orders_service.place_order(seeds.id, BUYER, quantity=2)

        assert registry.types_for(SUPPLIER) == ["supply_order_created"]
        assert registry.types_for(BUYER) == ["supply_order_created"]


class TestCancellation:
    """Test that cancelling restores stock exactly once."""

    @pytest.mark.asyncio
    async def test_cancel_restores_and_is_idempotent(self, orders_service, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=3)

        await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")
        assert order.status == "cancelled"
        assert seeds.available_quantity == 10

        await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")
        assert seeds.available_quantity == 10

    @pytest.mark.asyncio
    async def test_conservation_across_orders(self, orders_service, seeds):
        """available + sum(non-cancelled quantities) == total after any sequence."""
        first = await orders_service.place_order(seeds.id, BUYER, quantity=2)
        second = await orders_service.place_order(seeds.id, OTHER, quantity=5)
        await orders_service.update_order_status(second.id, SUPPLIER, "shipped")
        await orders_service.update_order_status(first.id, SUPPLIER, "cancelled")
        await orders_service.update_order_status(first.id, SUPPLIER, "cancelled")

        live = [o for o in orders_service.list_for_user(SUPPLIER, role="supplier") if o.status != "cancelled"]
        assert seeds.available_quantity + sum(o.quantity for o in live) == seeds.total_quantity

    @pytest.mark.asyncio
    async def test_cancelled_order_cannot_reopen(self, orders_service, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=3)
        await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")

        with pytest.raises(InvalidTransition):
            await orders_service.update_order_status(order.id, SUPPLIER, "pending")
        assert order.status == "cancelled"
        assert seeds.available_quantity == 10

    @pytest.mark.asyncio
    async def test_cancel_after_shrink_stays_within_total(self, orders_service, inventory, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=4)
        inventory.update_total_quantity(seeds.id, 6, SUPPLIER)

        await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")

        assert seeds.available_quantity == 6
        assert seeds.available_quantity <= seeds.total_quantity

    @pytest.mark.asyncio
    async def test_failed_restock_keeps_order_open(self, orders_service, repos, seeds, monkeypatch):
        """A restock failure leaves the order cancellable, so a retry conserves stock."""
        order = await orders_service.place_order(seeds.id, BUYER, quantity=3)
        real_restore = repos.supplies.restore
        calls = []

        def flaky_restore(supply_id, quantity, clamp):
            calls.append(quantity)
            if len(calls) == 1:
                raise RuntimeError("store unavailable")
            return real_restore(supply_id, quantity, clamp)

        monkeypatch.setattr(repos.supplies, "restore", flaky_restore)

        with pytest.raises(RuntimeError):
            await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")
        assert repos.orders.get(order.id).status == "pending"
        assert seeds.available_quantity == 7

        await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")

        assert order.status == "cancelled"
        assert seeds.available_quantity == seeds.total_quantity == 10
        assert calls == [3, 3]

    @pytest.mark.asyncio
    async def test_cancel_with_missing_supply(self, orders_service, repos, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=3)
        del repos.supplies.records[seeds.id]

        with pytest.raises(NotFoundError):
            await orders_service.update_order_status(order.id, SUPPLIER, "cancelled")
        assert repos.orders.get(order.id).status == "pending"


class TestOrderStatus:

    @pytest.mark.asyncio
    async def test_supplier_moves_order_forward(self, orders_service, registry, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=1)

        for status in ("confirmed", "shipped", "delivered"):
            await orders_service.update_order_status(order.id, SUPPLIER, status)
            assert order.status == status

        assert seeds.available_quantity == 9
        assert registry.types_for(BUYER).count("supply_order_updated") == 3

    @pytest.mark.asyncio
    async def test_buyer_cannot_update(self, orders_service, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=1)

        with pytest.raises(ForbiddenError):
            await orders_service.update_order_status(order.id, BUYER, "cancelled")
        assert seeds.available_quantity == 9

    @pytest.mark.asyncio
    async def test_invalid_status(self, orders_service, seeds):
        order = await orders_service.place_order(seeds.id, BUYER, quantity=1)

        with pytest.raises(ValidationError, match="Invalid status"):
            await orders_service.update_order_status(order.id, SUPPLIER, "lost")

    @pytest.mark.asyncio
    async def test_unknown_order(self, orders_service):
        with pytest.raises(NotFoundError, match="Order not found"):
            await orders_service.update_order_status(uuid.uuid4(), SUPPLIER, "shipped")


class TestListForUser:

    @pytest.mark.asyncio
    async def test_roles(self, orders_service, seeds):
        bought = await orders_service.place_order(seeds.id, BUYER, quantity=1)
        other = await orders_service.place_order(seeds.id, OTHER, quantity=1)

        assert [o.id for o in orders_service.list_for_user(BUYER, role="buyer")] == [bought.id]
        assert {o.id for o in orders_service.list_for_user(SUPPLIER, role="supplier")} == {bought.id, other.id}
        assert orders_service.list_for_user(BUYER, role="supplier") == []

    @pytest.mark.asyncio
    async def test_both_roles_newest_first(self, orders_service, seeds):
        older = await orders_service.place_order(seeds.id, BUYER, quantity=1)
        newer = await orders_service.place_order(seeds.id, BUYER, quantity=1)
        older.order_date = datetime.now(timezone.utc) - timedelta(days=1)

        assert [o.id for o in orders_service.list_for_user(BUYER)] == [newer.id, older.id]

    def test_invalid_role(self, orders_service):
        with pytest.raises(ValidationError):
            orders_service.list_for_user(BUYER, role="admin")
