import logging
import time
from unittest.mock import MagicMock

import pytest
import stripe

from donate.errors import WebhookVerificationError
from donate.webhooks import DEFAULT_HANDLERS, WebhookDispatcher
from tests.helpers import WEBHOOK_SECRET, event_payload, sign_payload


@pytest.fixture
def dispatcher():
    return WebhookDispatcher(stripe.StripeClient("sk_test_123"), WEBHOOK_SECRET)


@pytest.fixture
def mocked_handlers(dispatcher):
    handlers = {event_type: MagicMock() for event_type in DEFAULT_HANDLERS}
    for event_type, handler in handlers.items():
        dispatcher.register(event_type, handler)
    return handlers


class TestVerify:

    def test_valid_signature(self, dispatcher):
        payload = event_payload("invoice.payment_succeeded", {"id": "in_1", "object": "invoice"})

        event = dispatcher.verify(payload.encode("utf-8"), sign_payload(payload))

        assert event.type == "invoice.payment_succeeded"
        assert event.data.object.id == "in_1"

    def test_tampered_payload(self, dispatcher):
        payload = event_payload("invoice.payment_succeeded", {"id": "in_1", "object": "invoice"})
        signature = sign_payload(payload)
        tampered = payload.replace("in_1", "in_2")

        with pytest.raises(WebhookVerificationError):
            dispatcher.verify(tampered.encode("utf-8"), signature)

    def test_wrong_secret(self, dispatcher):
        payload = event_payload("charge.succeeded", {"id": "ch_1", "object": "charge"})

        with pytest.raises(WebhookVerificationError):
            dispatcher.verify(payload.encode("utf-8"), sign_payload(payload, secret="whsec_other"))

    def test_expired_timestamp(self, dispatcher):
        payload = event_payload("charge.succeeded", {"id": "ch_1", "object": "charge"})
        old = int(time.time()) - 3600

        with pytest.raises(WebhookVerificationError):
            dispatcher.verify(payload.encode("utf-8"), sign_payload(payload, timestamp=old))

    def test_missing_signature(self, dispatcher):
        with pytest.raises(WebhookVerificationError, match="Missing Stripe-Signature"):
            dispatcher.verify(b"{}", None)


class TestDispatch:

    def _event(self, dispatcher, event_type, obj):
        payload = event_payload(event_type, obj)
        return dispatcher.verify(payload.encode("utf-8"), sign_payload(payload))

    @pytest.mark.parametrize("event_type", sorted(DEFAULT_HANDLERS))
    def test_routes_recognized_types(self, dispatcher, mocked_handlers, event_type):
        event = self._event(dispatcher, event_type, {"id": "obj_1", "object": "thing"})

        assert dispatcher.dispatch(event) is True

        mocked_handlers[event_type].assert_called_once()
        assert mocked_handlers[event_type].call_args.args[0].id == "obj_1"
        others = [h for t, h in mocked_handlers.items() if t != event_type]
        assert not any(h.called for h in others)

    def test_unrecognized_type_only_logs(self, dispatcher, mocked_handlers, caplog):
        event = self._event(dispatcher, "customer.created", {"id": "cus_1", "object": "customer"})

        with caplog.at_level(logging.INFO, logger="donate.webhooks"):
            assert dispatcher.dispatch(event) is False

        assert "Unhandled event type customer.created" in caplog.text
        assert not any(h.called for h in mocked_handlers.values())

    def test_subscription_updated_logs_status(self, dispatcher, caplog):
        event = self._event(
            dispatcher,
            "customer.subscription.updated",
            {"id": "sub_1", "object": "subscription", "status": "past_due"},
        )

        with caplog.at_level(logging.INFO, logger="donate.webhooks"):
            dispatcher.dispatch(event)

        assert "Subscription sub_1 updated to status past_due" in caplog.text

    def test_handler_failure_propagates(self, dispatcher, caplog):
        dispatcher.register("invoice.payment_failed", MagicMock(side_effect=RuntimeError("db down")))
        event = self._event(dispatcher, "invoice.payment_failed", {"id": "in_1", "object": "invoice"})

        with caplog.at_level(logging.ERROR, logger="donate.webhooks"):
            with pytest.raises(RuntimeError, match="db down"):
                dispatcher.dispatch(event)

        assert "not acknowledging" in caplog.text
