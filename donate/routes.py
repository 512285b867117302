import logging

from flask import Blueprint, current_app, jsonify, render_template, request

from donate.amounts import coerce_amount, tier_context
from donate.errors import InvalidAmountError, WebhookVerificationError

logger = logging.getLogger(__name__)

donate_bp = Blueprint("donate", __name__)


def _services():
    return current_app.extensions["donate"]


@donate_bp.get("/")
def index():
    settings = _services()["settings"]
    return render_template(
        "index.html",
        publishable_key=settings.stripe_publishable_key,
        **tier_context(),
    )


@donate_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


@donate_bp.post("/create-subscription")
def create_subscription():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    payment_method_id = data.get("paymentMethodId")
    amount_raw = data.get("amount")

    if not payment_method_id or "amount" not in data:
        return jsonify({"error": "PaymentMethodId and amount are required."}), 400

    try:
        amount = coerce_amount(amount_raw)
    except InvalidAmountError as exc:
        return jsonify({"error": str(exc)}), 400

    services = _services()
    if not services["settings"].stripe_secret_key:
        logger.error("Stripe secret key not set; refusing to create subscription")
        return jsonify({"error": "Internal Server Error"}), 500

    try:
        result = services["subscriptions"].create(str(payment_method_id), amount)
    except Exception:
        logger.exception("Error creating subscription")
        return jsonify({"error": "Internal Server Error"}), 500

    return jsonify(result.to_dict()), 200


@donate_bp.post("/webhook")
def webhook():
    dispatcher = _services()["webhooks"]
    payload = request.get_data(cache=False)
    signature = request.headers.get("Stripe-Signature")

    try:
        event = dispatcher.verify(payload, signature)
    except WebhookVerificationError as exc:
        logger.error(f"Webhook Error: {exc}")
        return f"Webhook Error: {exc}", 400, {"Content-Type": "text/plain; charset=utf-8"}

    logger.info(f"Received webhook {event.type} ({event.id})")
    dispatcher.dispatch(event)
    return "", 200
