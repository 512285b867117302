import logging
import time
from dataclasses import dataclass

import stripe

from donate.amounts import format_amount, validate_amount, whole_units
from donate.config import Settings
from donate.errors import SubscriptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionResult:
    subscription_id: str
    client_secret: str
    status: str
    invoice_status: str

    def to_dict(self) -> dict:
        return {
            "subscriptionId": self.subscription_id,
            "clientSecret": self.client_secret,
            "status": self.status,
            "invoiceStatus": self.invoice_status,
        }


class SubscriptionCreator:
    """Creates a recurring donation subscription in Stripe.

    The sequence is customer, attach card, default card, subscription,
    client secret, meter event. Nothing is rolled back when a later step
    fails: the customer (and possibly the subscription) stays in Stripe and
    its id is logged and attached to the raised error.
    """

    def __init__(self, client: stripe.StripeClient, settings: Settings):
        self._client = client
        self._settings = settings

    def create(self, payment_method_id: str, amount: int) -> SubscriptionResult:
        validate_amount(amount)

        step = "create_customer"
        customer_id = None
        subscription_id = None
        try:
            customer = self._client.v1.customers.create(
                params={"payment_method": payment_method_id}
            )
            customer_id = customer.id

            step = "attach_payment_method"
            self._client.v1.payment_methods.attach(
                payment_method_id, params={"customer": customer_id}
            )

            step = "set_default_payment_method"
            self._client.v1.customers.update(
                customer_id,
                params={"invoice_settings": {"default_payment_method": payment_method_id}},
            )

            step = "create_subscription"
            subscription = self._client.v1.subscriptions.create(
                params=self._subscription_params(customer_id, amount)
            )
            subscription_id = subscription.id

            step = "resolve_client_secret"
            invoice = self._latest_invoice(subscription, customer_id)
            client_secret = self._client_secret(invoice, customer_id, subscription_id)

            step = "record_meter_event"
            self._record_usage(subscription_id, customer_id, amount)
        except Exception as exc:
            logger.error(
                f"Error creating subscription at step {step} "
                f"(customer={customer_id}, subscription={subscription_id}, "
                f"amount=${format_amount(amount)}): {exc}"
            )
            raise

        logger.info(
            f"Created subscription {subscription_id} for customer {customer_id} "
            f"(${format_amount(amount)}, status={subscription.status}, "
            f"invoice={invoice.status})"
        )
        return SubscriptionResult(
            subscription_id=subscription_id,
            client_secret=client_secret,
            status=subscription.status,
            invoice_status=invoice.status,
        )

    def _subscription_params(self, customer_id: str, amount: int) -> dict:
        return {
            "customer": customer_id,
            "items": [{"price": self._settings.stripe_price_id}],
            "payment_behavior": "default_incomplete",
            "payment_settings": {"save_default_payment_method": "on_subscription"},
            "expand": ["latest_invoice.payment_intent"],
            "add_invoice_items": [
                {
                    "price_data": {
                        "currency": self._settings.stripe_currency,
                        "product": self._settings.stripe_product_id,
                        "unit_amount": amount,
                    },
                }
            ],
        }

    @staticmethod
    def _latest_invoice(subscription, customer_id: str):
        invoice = getattr(subscription, "latest_invoice", None)
        if not invoice or isinstance(invoice, str):
            raise SubscriptionError(
                f"Invalid latest invoice data: {invoice!r}",
                step="resolve_client_secret",
                customer_id=customer_id,
                subscription_id=subscription.id,
            )
        return invoice

    def _client_secret(self, invoice, customer_id: str, subscription_id: str) -> str:
        payment_intent = getattr(invoice, "payment_intent", None)
        if not payment_intent:
            raise SubscriptionError(
                "No payment intent found for the invoice.",
                step="resolve_client_secret",
                customer_id=customer_id,
                subscription_id=subscription_id,
            )
        if isinstance(payment_intent, str):
            payment_intent = self._client.v1.payment_intents.retrieve(payment_intent)
        return payment_intent.client_secret

    def _record_usage(self, subscription_id: str, customer_id: str, amount: int) -> None:
        self._client.v1.billing.meter_events.create(
            params={
                "event_name": self._settings.stripe_meter_event_name,
                "identifier": subscription_id,
                "payload": {
                    "value": str(whole_units(amount)),
                    "stripe_customer_id": customer_id,
                },
                "timestamp": int(time.time()),
            }
        )
