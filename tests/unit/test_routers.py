"""HTTP-level tests: envelopes, auth dependencies and error mapping.

Services are replaced on the router modules; the database session is an AsyncMock.
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.settings import settings
from src.main import app
from src.mp_admin.api import router as admin_api
from src.mp_cart.domain.models import CartLine, UserProfile
from src.mp_common.database import get_db_session
from src.mp_common.enums import InvoiceType, PayoutStatus
from src.mp_common.errors import InsufficientFundsError
from src.mp_gateway.auth.dependencies import Actor, get_current_actor
from src.mp_invoice.api import router as invoice_api
from src.mp_invoice.domain.models import Invoice
from src.mp_order.api import admin_router as admin_order_api
from src.mp_order.api import checkout_router as checkout_api
from src.mp_order.api import webhook_router as webhook_api
from src.mp_order.application.conversion import OrderConversionService
from src.mp_order.application.events import EventResult
from src.mp_payout.api import router as payout_api
from src.mp_payout.domain.models import PayoutRequest
from src.mp_wallet.api import router as wallet_api
from src.mp_wallet.application.schemas import BalanceResponse

WEBHOOK_HEADERS = {"X-Webhook-Secret": "hook-secret"}


async def _session() -> AsyncGenerator[AsyncMock, None]:
    yield AsyncMock()


@pytest.fixture(autouse=True)
def fake_session(monkeypatch: pytest.MonkeyPatch) -> None:
    app.dependency_overrides[get_db_session] = _session
    monkeypatch.setattr(settings, "WEBHOOK_SECRET", "hook-secret")


def act_as(user_id: str, role: str) -> None:
    app.dependency_overrides[get_current_actor] = lambda: Actor(id=user_id, role=role)


def _payment_body(**overrides) -> dict[str, object]:
    body: dict[str, object] = {
        "group_id": "12345678",
        "payment_reference": "PAY-1",
        "amount_paid": 24150,
        "currency": "AED",
        "payment_state": "paid",
    }
    body.update(overrides)
    return body


async def test_health(client) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestAuth:
    async def test_missing_token(self, client) -> None:
        resp = await client.get("/api/v1/wallet/balance")
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003
        assert resp.json()["data"] is None

    async def test_admin_route_as_vendor(self, client) -> None:
        act_as("v1", "vendor")
        resp = await client.post("/api/v1/admin/reconcile")
        assert resp.status_code == 403
        assert resp.json()["code"] == 1006

    async def test_webhook_without_secret(self, client) -> None:
        resp = await client.post("/api/v1/webhooks/payments", json=_payment_body())
        assert resp.status_code == 401
        assert resp.json()["code"] == 1007


class TestWallet:
    async def test_balance_envelope(self, client, monkeypatch) -> None:
        act_as("v1", "vendor")
        service = MagicMock()
        service.get_balance = AsyncMock(
            return_value=BalanceResponse.from_amounts("v1", 1000, 24150, "AED")
        )
        monkeypatch.setattr(wallet_api, "_service", service)

        resp = await client.get("/api/v1/wallet/balance")
        body = resp.json()
        assert resp.status_code == 200
        assert body["code"] == 0
        assert body["data"]["locked_balance_display"] == "AED 241.50"
        assert body["request_id"].startswith("req_")

    async def test_bad_limit_is_a_400_envelope(self, client) -> None:
        act_as("v1", "vendor")
        resp = await client.get("/api/v1/wallet/ledger", params={"limit": 0})
        assert resp.status_code == 400
        assert resp.json()["code"] == 9003
        assert "limit" in resp.json()["message"]


class TestWebhooks:
    async def test_payment_applied(self, client, monkeypatch) -> None:
        service = MagicMock()
        service.handle_payment = AsyncMock(
            return_value=EventResult(group_id="12345678", order_ids=["o1"], applied=["o1"])
        )
        monkeypatch.setattr(webhook_api, "_service", service)

        resp = await client.post(
            "/api/v1/webhooks/payments", json=_payment_body(), headers=WEBHOOK_HEADERS
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["applied"] == ["o1"]
        event = service.handle_payment.await_args.args[1]
        assert event.amount_paid == 24150

    async def test_payment_without_target(self, client) -> None:
        body = _payment_body()
        del body["group_id"]
        resp = await client.post("/api/v1/webhooks/payments", json=body, headers=WEBHOOK_HEADERS)
        assert resp.status_code == 400
        assert resp.json()["code"] == 9003

    async def test_unknown_tracking_event(self, client) -> None:
        resp = await client.post(
            "/api/v1/webhooks/tracking",
            json={"order_id": "o1", "event_type": "exploded"},
            headers=WEBHOOK_HEADERS,
        )
        assert resp.status_code == 400


class TestCheckout:
    @pytest.fixture
    def conversion(self, monkeypatch, order_repo, cart_repo) -> OrderConversionService:
        cart_repo.profiles["b1"] = UserProfile("b1", "AE", "approved")
        cart_repo.add_cart(
            "c1",
            "b1",
            [
                CartLine(
                    product_id="p1",
                    product_name="Lamp",
                    vendor_id="v1",
                    category_id=None,
                    quantity=2,
                    unit_base_price=10000,
                    unit_sell_price=13000,
                    unit_shipping=1000,
                    unit_packing=500,
                    vendor_country="AE",
                )
            ],
        )
        service = OrderConversionService(order_repo=order_repo, cart_repo=cart_repo)
        monkeypatch.setattr(checkout_api, "_service", service)
        return service

    async def test_shipping_in_body_is_ignored(self, client, conversion) -> None:
        act_as("b1", "buyer")
        resp = await client.post(
            "/api/v1/checkout/convert",
            json={"cart_id": "c1", "shipping_overrides": {"v1": 0}},
        )
        assert resp.status_code == 201
        [order] = resp.json()["data"]["orders"]
        assert order["shipping_total"] == 2000
        assert order["total_amount"] == 24150

    async def test_preview_prices_from_cart(self, client, conversion) -> None:
        act_as("b1", "buyer")
        resp = await client.post(
            "/api/v1/checkout/preview",
            json={"cart_id": "c1", "shipping_overrides": {"v1": -50000}},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["grand_total"] == 24150


class TestAdminOrders:
    async def test_empty_update_rejected(self, client) -> None:
        act_as("a1", "admin")
        resp = await client.patch("/api/v1/admin/orders/o1", json={"note": "just a note"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Nothing to update"

    async def test_unknown_status_value(self, client) -> None:
        act_as("a1", "admin")
        resp = await client.patch("/api/v1/admin/orders/o1", json={"order_status": "teleported"})
        assert resp.status_code == 400


class TestPayouts:
    async def test_request_created(self, client, monkeypatch) -> None:
        act_as("v1", "vendor")
        service = MagicMock()
        service.request = AsyncMock(
            return_value=PayoutRequest(id=7, user_id="v1", amount=500, status=PayoutStatus.PENDING)
        )
        monkeypatch.setattr(payout_api, "_service", service)

        resp = await client.post("/api/v1/payouts", json={"amount": 500})
        assert resp.status_code == 201
        assert resp.json()["data"]["status"] == "pending"
        assert resp.json()["data"]["amount_display"] == "AED 5.00"

    async def test_insufficient_funds_maps_to_error_envelope(self, client, monkeypatch) -> None:
        act_as("v1", "vendor")
        service = MagicMock()
        service.request = AsyncMock(side_effect=InsufficientFundsError(500, 100))
        monkeypatch.setattr(payout_api, "_service", service)

        resp = await client.post("/api/v1/payouts", json={"amount": 500})
        err = InsufficientFundsError(500, 100)
        assert resp.status_code == err.http_status
        assert resp.json()["code"] == err.code

    async def test_pay_requires_admin(self, client) -> None:
        act_as("v1", "vendor")
        resp = await client.post(
            "/api/v1/payouts/7/pay", json={"transaction_reference": "TX-1"}
        )
        assert resp.status_code == 403


class TestAdminAndInvoices:
    async def test_reconcile(self, client, monkeypatch) -> None:
        act_as("a1", "admin")
        service = MagicMock()
        service.reconcile = AsyncMock(return_value={"ok": True, "violations": []})
        monkeypatch.setattr(admin_api, "_service", service)

        resp = await client.post("/api/v1/admin/reconcile")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"ok": True, "violations": []}

    async def test_invoice_share_link_is_public(self, client, monkeypatch) -> None:
        invoice = Invoice(
            id="inv-1",
            invoice_number="INV-2026-00001",
            invoice_type=InvoiceType.ADMIN_TO_CUSTOMER,
            order_id="o1",
            group_id="12345678",
            scope_key="12345678",
            buyer_id="b1",
            vendor_id=None,
            payment_status="paid",
            subtotal=20000,
            vat_amount=1150,
            shipping_amount=2000,
            packing_amount=1000,
            total_amount=24150,
            currency="AED",
            access_token="t" * 64,
        )
        service = MagicMock()
        service.get_by_token = AsyncMock(return_value=invoice)
        monkeypatch.setattr(invoice_api, "_service", service)

        resp = await client.get(f"/api/v1/invoices/by-token/{'t' * 64}")
        assert resp.status_code == 200
        assert resp.json()["data"]["total_display"] == "AED 241.50"

    async def test_invoice_by_id_hidden_from_strangers(self, client, monkeypatch) -> None:
        act_as("x9", "buyer")
        invoice = MagicMock(buyer_id="b1", vendor_id="v1")
        service = MagicMock()
        service.get = AsyncMock(return_value=invoice)
        monkeypatch.setattr(invoice_api, "_service", service)

        resp = await client.get("/api/v1/invoices/inv-1")
        assert resp.status_code == 403


async def test_inbound_request_id_is_echoed(client) -> None:
    resp = await client.get("/health", headers={"X-Request-ID": "gw-retry-42"})
    assert resp.headers["X-Request-ID"] == "gw-retry-42"


async def test_error_envelope_carries_request_id(client) -> None:
    resp = await client.get("/api/v1/wallet/balance", headers={"X-Request-ID": "trace-7"})
    assert resp.status_code == 401
    assert resp.json()["request_id"] == "trace-7"
