"""
CHECKOUT FLOW TEST: Configure -> Quote -> Order -> Pay -> Ship -> Deliver

Walks an order through its whole life over the HTTP API and checks the
order keeps the prices it was created with.

Test Scenario:
1. Setup: business card catalog, broker customer, FedEx with 10% markup
2. Quote: price a configuration
3. Order: submit the same configuration (plus a tampered total)
4. Verify: server-side prices, tax, marked-up shipping, frozen breakdown
5. Lifecycle: PAID -> IN_PRODUCTION -> SHIPPED -> DELIVERED
6. Catalog edit after the fact does not change the stored order
"""
import pytest
import re
from decimal import Decimal

from gangrun.core.settings import settings
from gangrun.models import Product
from gangrun.services import order_service
from gangrun.services.order_status import order_status_service
from tests.factories import create_test_carrier, create_test_order


def _line(**overrides):
    line = {
        "product_id": "business_cards",
        "paper_stock_id": "paper_16pt",
        "coating_id": "coating_none",
        "sides_id": "sides_single",
        "quantity": 1000,
        "size_id": "2x3.5",
        "turnaround_time_id": "economy",
        "add_ons": [],
    }
    line.update(overrides)
    return line


class TestCheckoutFlow:

    @pytest.fixture(autouse=True)
    def setup(self, db_session, catalog_data):
        create_test_carrier(db_session, carrier="FEDEX", markup_percentage=Decimal("10"))
        create_test_carrier(db_session, carrier="SOUTHWEST_CARGO", markup_percentage=Decimal("5"), service_area=["TX", "OK"])
        db_session.commit()
        self.db = db_session

    def test_full_checkout_flow(self, client, broker_customer):
        # Quote
        line = _line(turnaround_time_id="fast", add_ons=[{"add_on_id": "banding", "options": {}}])
        quote = client.post("/api/v1/pricing/quote", json={**line, "customer_id": broker_customer.id})
        assert quote.status_code == 200
        quoted_total = Decimal(quote.json()["total"])
        # (100 + 7.50) x 1.3 x 0.9
        assert quoted_total == Decimal("125.78")

        # Order, with a client-side total that must be ignored
        response = client.post("/api/v1/orders", json={
            "lines": [{**line, "total": "1.00"}],
            "customer_id": broker_customer.id,
            "carrier": "fedex",
            "shipping_base_rate": "20.00",
            "subtotal": "1.00",
        })
        assert response.status_code == 201, response.text
        order = response.json()

        assert re.fullmatch(r"GRP-\d{4}-0001", order["order_number"])
        assert order["status"] == "PENDING_PAYMENT"
        assert order["allowed_transitions"] == ["PAID", "CANCELLED", "REFUNDED"]
        assert Decimal(order["subtotal"]) == quoted_total
        assert Decimal(order["shipping_amount"]) == Decimal("22.00")
        assert order["carrier"] == "FEDEX"
        assert order["status_history"][0]["to_status"] == "PENDING_PAYMENT"

        item = order["items"][0]
        assert Decimal(item["line_total"]) == quoted_total
        assert item["catalog_version"] == 1
        assert item["configuration_snapshot"]["turnaround_time_id"] == "fast"
        assert item["price_breakdown"]["total"] == "125.78"

        # Lifecycle
        order_id = order["id"]
        for status in ["PAID", "IN_PRODUCTION", "SHIPPED", "DELIVERED"]:
            response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": status, "changed_by": "admin"})
            assert response.status_code == 200, response.text
            assert response.json()["status"] == status

        final = client.get(f"/api/v1/orders/{order_id}").json()
        assert final["delivered_at"] is not None
        assert final["allowed_transitions"] == []
        assert [h["to_status"] for h in final["status_history"]] == [
            "PENDING_PAYMENT", "PAID", "IN_PRODUCTION", "SHIPPED", "DELIVERED",
        ]
        assert Decimal(final["grand_total"]) == Decimal(order["grand_total"])

    def test_order_keeps_prices_after_catalog_edit(self, client, db_session):
        response = client.post("/api/v1/orders", json={"lines": [_line()]})
        assert response.status_code == 201
        order_id = response.json()["id"]

        product = db_session.query(Product).filter_by(id="business_cards").first()
        product.base_price = Decimal("500.00")
        db_session.commit()

        stored = client.get(f"/api/v1/orders/{order_id}").json()
        assert Decimal(stored["subtotal"]) == Decimal("100.00")
        assert stored["items"][0]["catalog_version"] == 1

        quote = client.post("/api/v1/pricing/quote", json=_line())
        assert Decimal(quote.json()["total"]) == Decimal("500.00")
        assert quote.json()["catalog_version"] == 2

    def test_multiple_lines(self, client):
        response = client.post("/api/v1/orders", json={"lines": [
            _line(),
            _line(quantity=2500, add_ons=[{"add_on_id": "corner_rounding", "options": {"radius": "1/8"}}]),
        ]})

        assert response.status_code == 201
        data = response.json()
        assert [i["line_number"] for i in data["items"]] == [1, 2]
        assert Decimal(data["subtotal"]) == Decimal("245.00")

    def test_tax_applied_to_subtotal(self, client, monkeypatch):
        monkeypatch.setattr(settings, "TAX_RATE", 0.0825)
        response = client.post("/api/v1/orders", json={"lines": [_line()]})

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["tax_amount"]) == Decimal("8.25")
        assert Decimal(data["grand_total"]) == Decimal("108.25")

    def test_order_numbers_increment(self):
        first = order_service.generate_order_number(self.db)
        create_test_order(self.db, order_number=first)
        self.db.commit()

        second = order_service.generate_order_number(self.db)
        assert int(second.rsplit("-", 1)[1]) == int(first.rsplit("-", 1)[1]) + 1


class TestCheckoutErrors:

    @pytest.fixture(autouse=True)
    def setup(self, db_session, catalog_data):
        create_test_carrier(db_session, carrier="UPS", enabled=False)
        create_test_carrier(db_session, carrier="SOUTHWEST_CARGO", service_area=["TX", "OK"])
        db_session.commit()

    def test_invalid_line_rejects_whole_order(self, client, db_session):
        response = client.post("/api/v1/orders", json={"lines": [
            _line(), _line(coating_id="coating_1", turnaround_time_id="fastest"),
        ]})

        assert response.status_code == 400
        assert response.json()["error"] == "INCOMPATIBLE_TURNAROUND"

    def test_no_lines(self, client):
        response = client.post("/api/v1/orders", json={"lines": []})
        assert response.status_code == 422

    def test_unknown_customer(self, client):
        response = client.post("/api/v1/orders", json={"lines": [_line()], "customer_id": 99999})
        assert response.status_code == 404

    @pytest.mark.parametrize("carrier,region", [
        ("UPS", None),
        ("DHL", None),
        ("SOUTHWEST_CARGO", "CA"),
    ])
    def test_shipping_unavailable(self, client, carrier, region):
        response = client.post("/api/v1/orders", json={
            "lines": [_line()], "carrier": carrier, "shipping_region": region, "shipping_base_rate": "15",
        })

        assert response.status_code == 422
        assert response.json()["error"] == "SHIPPING_UNAVAILABLE"

    def test_service_area_region_accepted(self, client):
        response = client.post("/api/v1/orders", json={
            "lines": [_line()], "carrier": "SOUTHWEST_CARGO", "shipping_region": "tx", "shipping_base_rate": "40",
        })

        assert response.status_code == 201
        assert Decimal(response.json()["shipping_amount"]) == Decimal("44.00")

    def test_invalid_transition(self, client):
        order_id = client.post("/api/v1/orders", json={"lines": [_line()]}).json()["id"]

        response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "SHIPPED"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "INVALID_STATE"
        assert data["details"]["allowed_states"] == ["PAID", "CANCELLED", "REFUNDED"]

    def test_unknown_status_value(self, client):
        order_id = client.post("/api/v1/orders", json={"lines": [_line()]}).json()["id"]
        response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "LOST"})
        assert response.status_code == 422

    def test_order_not_found(self, client):
        assert client.get("/api/v1/orders/99999").status_code == 404


class TestShippingUpdates:

    def test_tracking_number_on_paid_order(self, client, db_session):
        order = create_test_order(db_session, status="PAID")
        db_session.commit()

        response = client.patch(
            f"/api/v1/orders/{order.id}/shipping",
            json={"tracking_number": "1Z999AA10123456784", "carrier": "ups"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["tracking_number"] == "1Z999AA10123456784"
        assert data["carrier"] == "UPS"
        assert Decimal(data["shipping_amount"]) == Decimal("0")

    def test_shipping_locked_before_payment(self, client, db_session):
        order = create_test_order(db_session)
        db_session.commit()

        response = client.patch(f"/api/v1/orders/{order.id}/shipping", json={"tracking_number": "X"})
        assert response.status_code == 400

    def test_shipping_locked_after_delivery(self, db_session):
        order = create_test_order(db_session, status="SHIPPED")
        db_session.commit()
        order_status_service.update_status(db_session, order, "DELIVERED")

        from gangrun.exceptions import InvalidStateError
        from gangrun.schemas.order import OrderUpdateShipping

        with pytest.raises(InvalidStateError):
            order_service.update_shipping(db_session, order, OrderUpdateShipping(tracking_number="X"))
