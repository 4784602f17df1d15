"""
Unit Tests for Billing Routes

Tests checkout and billing portal session endpoints.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from billrelay.api.app import create_app
from billrelay.api.routes.billing import CheckoutRequest, PortalRequest, router
from billrelay.core.errors import PaymentProviderError
from billrelay.integrations.stripe import BillingService, CheckoutSession


# ══════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def mock_billing_service(test_settings):
    """Billing service with mocked Stripe calls."""
    service = BillingService(test_settings, client=MagicMock())
    service.create_member_checkout = AsyncMock(
        return_value=CheckoutSession(id="cs_test_123", url="https://checkout.stripe.com/pay/cs_test_123")
    )
    service.create_billing_portal = AsyncMock(return_value="https://billing.stripe.com/session/bps_123")
    return service


@pytest.fixture
def client(test_settings, mock_billing_service) -> TestClient:
    app = create_app(test_settings, billing_service=mock_billing_service, reconciler=MagicMock())
    return TestClient(app)


# ══════════════════════════════════════════════════════════════
# Request Model Tests
# ══════════════════════════════════════════════════════════════


class TestRequestModels:
    """Test request schemas accept frontend field names."""

    def test_checkout_request_aliases(self):
        request = CheckoutRequest.model_validate(
            {"firebase_id": "user_a", "email": "a@x.com", "selectedPack": "price_premium_annual"}
        )
        assert request.member_id == "user_a"
        assert request.plan == "price_premium_annual"

    def test_checkout_request_plain_names(self):
        request = CheckoutRequest.model_validate({"member_id": "user_a", "email": "a@x.com"})
        assert request.plan is None

    def test_portal_request_alias(self):
        assert PortalRequest.model_validate({"customerId": "cus_1"}).customer_id == "cus_1"


# ══════════════════════════════════════════════════════════════
# Checkout Tests
# ══════════════════════════════════════════════════════════════


class TestCheckoutSession:
    """Test POST /billing/checkout-session."""

    def test_checkout_success(self, client, mock_billing_service):
        response = client.post(
            "/api/v1/billing/checkout-session",
            json={"firebase_id": "user_a", "email": "a@x.com", "selectedPack": "price_premium_monthly"},
        )

        assert response.status_code == 200
        assert response.json() == {"url": "https://checkout.stripe.com/pay/cs_test_123"}
        mock_billing_service.create_member_checkout.assert_called_once_with(
            member_id="user_a",
            email="a@x.com",
            plan="price_premium_monthly",
        )

    def test_checkout_failure(self, client, mock_billing_service):
        mock_billing_service.create_member_checkout.side_effect = PaymentProviderError("No such price")

        response = client.post(
            "/api/v1/billing/checkout-session",
            json={"member_id": "user_a", "email": "a@x.com"},
        )

        assert response.status_code == 500
        assert "No such price" in response.json()["detail"]

    def test_checkout_validation(self, client):
        response = client.post("/api/v1/billing/checkout-session", json={"email": "a@x.com"})

        assert response.status_code == 422


# ══════════════════════════════════════════════════════════════
# Portal Tests
# ══════════════════════════════════════════════════════════════


class TestPortalSession:
    """Test POST /billing/portal-session."""

    def test_portal_success(self, client, mock_billing_service):
        response = client.post("/api/v1/billing/portal-session", json={"customerId": "cus_123"})

        assert response.status_code == 200
        assert response.json() == {"url": "https://billing.stripe.com/session/bps_123"}
        mock_billing_service.create_billing_portal.assert_called_once_with("cus_123")

    def test_portal_failure(self, client, mock_billing_service):
        mock_billing_service.create_billing_portal.side_effect = PaymentProviderError("no customer")

        response = client.post("/api/v1/billing/portal-session", json={"customer_id": "cus_404"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Unable to create billing portal session"


# ══════════════════════════════════════════════════════════════
# Plans Tests
# ══════════════════════════════════════════════════════════════


class TestListPlans:
    """Test GET /billing/plans."""

    def test_list_plans(self, client):
        response = client.get("/api/v1/billing/plans")

        assert response.status_code == 200
        prices = {p["plan"]: p["price_id"] for p in response.json()}
        assert prices["price_premium_monthly"] == "price_monthly_test"
        assert prices["price_studio_premium_annual"] == "price_annual_test"


class TestRouterConfiguration:
    """Test router configuration."""

    def test_router_has_routes(self):
        routes = [r.path for r in router.routes]
        assert "/checkout-session" in routes
        assert "/portal-session" in routes
        assert "/plans" in routes
