"""
API tests for the read dispatcher.

Tests:
- POST /api/v1/action - page reads keyed by "page"
- POST /serverAction.php - path the SPA was built against
"""

import pytest
from httpx import AsyncClient

from easybuy.db.models import Payment, VehicleImage, WishlistEntry


class TestDispatch:
    """Tests for page routing and malformed requests."""

    @pytest.mark.asyncio
    async def test_missing_page(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={})

        assert response.status_code == 200
        assert response.json()["error"] == "Missing page parameter"

    @pytest.mark.asyncio
    async def test_unknown_page(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "admin_secrets"})

        assert response.status_code == 200
        data = response.json()
        assert data["error"] == "Invalid page request: admin_secrets"
        assert data["code"] == "ERR_1004"

    @pytest.mark.asyncio
    async def test_malformed_body_reads_as_empty(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(
            action_url,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.json()["error"] == "Missing page parameter"

    @pytest.mark.asyncio
    async def test_error_carries_request_id(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(
            action_url, json={"page": "nope"}, headers={"X-Request-ID": "req-123"}
        )

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["request_id"] == "req-123"

    @pytest.mark.asyncio
    async def test_legacy_path(self, async_client: AsyncClient, vehicle):
        response = await async_client.post("/serverAction.php", json={"page": "vehicles"})

        assert response.status_code == 200
        assert [v["id"] for v in response.json()] == [vehicle.id]


class TestVehiclePages:
    """Tests for the vehicles and vehicle pages."""

    @pytest.mark.asyncio
    async def test_vehicles_empty(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "vehicles"})

        assert response.json() == []

    @pytest.mark.asyncio
    async def test_vehicles_fields(self, async_client: AsyncClient, action_url: str, vehicle):
        response = await async_client.post(action_url, json={"page": "vehicles"})

        row = response.json()[0]
        assert row["make"] == "Toyota"
        assert row["price"] == 20000.0
        assert row["status"] == "available"

    @pytest.mark.asyncio
    async def test_vehicle_with_gallery(
        self, async_client: AsyncClient, action_url: str, db_session, vehicle
    ):
        db_session.add_all([
            VehicleImage(vehicle_id=vehicle.id, image_path="uploads/vehicles/1_front.jpg"),
            VehicleImage(vehicle_id=vehicle.id, image_path="uploads/vehicles/2_rear.jpg"),
        ])
        await db_session.commit()

        response = await async_client.post(action_url, json={"page": "vehicle", "id": vehicle.id})

        data = response.json()
        assert data["id"] == vehicle.id
        assert data["gallery"] == ["uploads/vehicles/1_front.jpg", "uploads/vehicles/2_rear.jpg"]

    @pytest.mark.asyncio
    async def test_vehicle_not_found(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "vehicle", "id": 404})

        assert response.json()["error"] == "Vehicle not found"

    @pytest.mark.asyncio
    async def test_vehicle_without_id(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "vehicle"})

        assert response.json()["error"] == "Missing parameter: id"

    @pytest.mark.asyncio
    async def test_vehicle_id_not_a_number(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "vehicle", "id": "abc"})

        assert response.json()["error"] == "Invalid parameter: id"


class TestOrderPages:
    """Tests for the orders, order and transactions pages."""

    @pytest.mark.asyncio
    async def test_buyer_sees_only_own_orders(
        self, async_client: AsyncClient, action_url: str, installment_order
    ):
        own = await async_client.post(
            action_url, json={"page": "orders", "email": "jane@example.com", "role": "user"}
        )
        other = await async_client.post(
            action_url, json={"page": "orders", "email": "bob@example.com", "role": "user"}
        )

        assert [o["id"] for o in own.json()] == [installment_order.id]
        assert other.json() == []

    @pytest.mark.asyncio
    async def test_admin_sees_every_order(
        self, async_client: AsyncClient, action_url: str, installment_order
    ):
        response = await async_client.post(
            action_url, json={"page": "orders", "email": "admin@easybuy.example", "role": "admin"}
        )

        orders = response.json()
        assert len(orders) == 1
        assert orders[0]["vehicle"]["make"] == "Toyota"

    @pytest.mark.asyncio
    async def test_order_detail(
        self, async_client: AsyncClient, action_url: str, installment_order, pending_installment
    ):
        response = await async_client.post(
            action_url, json={"page": "order", "id": installment_order.id}
        )

        data = response.json()
        assert data["status"] == "Pending Verification"
        assert data["vehicle"]["id"] == installment_order.vehicle_id
        assert [p["id"] for p in data["payments"]] == [pending_installment.id]
        summary = data["payment_summary"]
        assert summary["total_paid"] == 0
        assert summary["total_pending"] == 6250
        assert summary["shipping_eligible"] is False

    @pytest.mark.asyncio
    async def test_order_not_found(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "order", "id": 77})

        assert response.json()["error"] == "Order not found"

    @pytest.mark.asyncio
    async def test_transactions_ledger(
        self, async_client: AsyncClient, action_url: str, installment_order, pending_installment
    ):
        response = await async_client.post(action_url, json={"page": "transactions"})

        entries = response.json()
        assert len(entries) == 2
        # The installment was created after the order
        installment, deposit = entries
        assert installment["type"] == "Month 1 Installment"
        assert installment["amount_display"] == 1250.0
        assert installment["buyer_email"] == "jane@example.com"
        assert installment["reference"] == (
            f"#PL-{pending_installment.id:04d} (Ord #{installment_order.id})"
        )
        assert deposit["type"] == "Initial Deposit"
        assert deposit["amount_display"] == 5000.0
        assert deposit["reference"] == f"#EB-{installment_order.id:04d}"

    @pytest.mark.asyncio
    async def test_transactions_unknown_month(
        self, async_client: AsyncClient, action_url: str, db_session, installment_order
    ):
        db_session.add(Payment(order_id=installment_order.id, amount=50.0, month_number=0))
        await db_session.commit()

        response = await async_client.post(action_url, json={"page": "transactions"})

        types = {entry["type"] for entry in response.json()}
        assert types == {"Initial Deposit", "Month ? Installment"}

    @pytest.mark.asyncio
    async def test_transactions_skip_orphan_installments(
        self, async_client: AsyncClient, action_url: str, db_session
    ):
        db_session.add(Payment(order_id=999, amount=100.0, month_number=1, status="Verified"))
        await db_session.commit()

        response = await async_client.post(action_url, json={"page": "transactions"})

        assert response.json() == []


class TestDashboardAndAccounts:
    """Tests for the dashboard, profile and wishlist pages."""

    @pytest.mark.asyncio
    async def test_dashboard(
        self, async_client: AsyncClient, action_url: str, db_session, installment_order
    ):
        installment_order.status = "Delivered"
        await db_session.commit()

        response = await async_client.post(action_url, json={"page": "dashboard"})

        data = response.json()
        assert data["total_vehicles"] == 1
        assert data["available_vehicles"] == 0
        assert data["total_orders"] == 1
        assert data["total_revenue"] == 20000.0
        assert len(data["recent_vehicles"]) == 1

    @pytest.mark.asyncio
    async def test_dashboard_empty(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(action_url, json={"page": "dashboard"})

        data = response.json()
        assert data["total_vehicles"] == 0
        assert data["total_revenue"] == 0
        assert data["recent_vehicles"] == []

    @pytest.mark.asyncio
    async def test_profile(self, async_client: AsyncClient, action_url: str, buyer):
        response = await async_client.post(
            action_url, json={"page": "profile", "email": "JANE@example.com"}
        )

        data = response.json()
        assert data["username"] == "Jane Buyer"
        assert "password" not in data

    @pytest.mark.asyncio
    async def test_profile_all(self, async_client: AsyncClient, action_url: str, buyer, admin):
        response = await async_client.post(action_url, json={"page": "profile", "all": True})

        assert {u["email"] for u in response.json()} == {buyer.email, admin.email}

    @pytest.mark.asyncio
    async def test_profile_all_must_be_true(self, async_client: AsyncClient, action_url: str, buyer):
        response = await async_client.post(action_url, json={"page": "profile", "all": "yes"})

        assert response.json()["error"] == "Missing parameter: email"

    @pytest.mark.asyncio
    async def test_profile_unknown(self, async_client: AsyncClient, action_url: str):
        response = await async_client.post(
            action_url, json={"page": "profile", "email": "ghost@example.com"}
        )

        assert response.json()["error"] == "User not found"

    @pytest.mark.asyncio
    async def test_wishlist_skips_deleted_vehicles(
        self, async_client: AsyncClient, action_url: str, db_session, vehicle
    ):
        db_session.add_all([
            WishlistEntry(user_email="jane@example.com", vehicle_id=vehicle.id),
            WishlistEntry(user_email="jane@example.com", vehicle_id=vehicle.id + 100),
        ])
        await db_session.commit()

        response = await async_client.post(
            action_url, json={"page": "wishlist", "email": "jane@example.com"}
        )

        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["vehicle"]["id"] == vehicle.id
