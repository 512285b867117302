import logging

import stripe

from donate.errors import WebhookVerificationError

logger = logging.getLogger(__name__)


def _log_invoice_payment_succeeded(invoice) -> None:
    # Persist the payment or send a receipt here.
    logger.info(f"Payment succeeded for invoice {invoice.id}")


def _log_invoice_payment_failed(invoice) -> None:
    # Notify the donor or flag the subscription here.
    logger.info(f"Payment failed for invoice {invoice.id}")


def _log_subscription_created(subscription) -> None:
    logger.info(f"Subscription {subscription.id} created")


def _log_subscription_updated(subscription) -> None:
    logger.info(f"Subscription {subscription.id} updated to status {subscription.status}")


def _log_subscription_deleted(subscription) -> None:
    logger.info(f"Subscription {subscription.id} deleted")


def _observe(obj) -> None:
    logger.debug(f"Observed {getattr(obj, 'object', 'object')} {getattr(obj, 'id', None)}")


DEFAULT_HANDLERS = {
    "payment_intent.succeeded": _observe,
    "payment_intent.payment_failed": _observe,
    "invoice.payment_succeeded": _log_invoice_payment_succeeded,
    "invoice.payment_failed": _log_invoice_payment_failed,
    "customer.subscription.created": _log_subscription_created,
    "customer.subscription.updated": _log_subscription_updated,
    "customer.subscription.deleted": _log_subscription_deleted,
    "charge.succeeded": _observe,
    "charge.failed": _observe,
    "charge.refunded": _observe,
    "charge.dispute.created": _observe,
    "charge.dispute.closed": _observe,
}


class WebhookDispatcher:
    """Verifies Stripe webhook deliveries and routes them by event type.

    Handler exceptions are logged and re-raised so the delivery is not
    acknowledged and Stripe retries it.
    """

    def __init__(self, client: stripe.StripeClient, webhook_secret: str, handlers=None):
        self._client = client
        self._webhook_secret = webhook_secret
        self._handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)

    def register(self, event_type: str, handler) -> None:
        self._handlers[event_type] = handler

    def verify(self, payload: bytes, signature):
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            return self._client.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise WebhookVerificationError(str(exc)) from exc

    def dispatch(self, event) -> bool:
        event_type = event.type
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled event type {event_type}")
            return False

        try:
            handler(event.data.object)
        except Exception:
            logger.exception(f"Handler for {event_type} failed on event {event.id}; not acknowledging")
            raise
        return True
