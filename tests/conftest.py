"""
Pytest configuration and fixtures for the donation service tests.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from donate.config import Settings
from tests.helpers import WEBHOOK_SECRET, make_app


@pytest.fixture
def settings():
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_publishable_key="pk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_price_id="price_recurring",
        stripe_product_id="prod_donation",
        stripe_meter_event_name="donation_amount",
    )


@pytest.fixture
def stripe_client():
    """
    Mocked StripeClient returning a subscription whose invoice carries an
    expanded payment intent.
    """
    client = MagicMock()
    client.v1.customers.create.return_value = SimpleNamespace(id="cus_123")
    client.v1.subscriptions.create.return_value = SimpleNamespace(
        id="sub_123",
        status="incomplete",
        latest_invoice=SimpleNamespace(
            id="in_123",
            status="open",
            payment_intent=SimpleNamespace(id="pi_123", client_secret="pi_123_secret_abc"),
        ),
    )
    return client


@pytest.fixture
def app(settings, stripe_client):
    return make_app(settings, stripe_client)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def webhook_app(settings):
    """App wired to a real StripeClient so signatures are really verified."""
    return make_app(settings, stripe.StripeClient("sk_test_123"))


@pytest.fixture
def webhook_client(webhook_app):
    return webhook_app.test_client()

