"""Recurring donation service backed by Stripe subscriptions."""
import logging
from typing import Optional

import stripe
from flask import Flask, jsonify
from flask_cors import CORS

from donate.config import Settings
from donate.subscriptions import SubscriptionCreator
from donate.webhooks import WebhookDispatcher

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("stripe").setLevel(logging.WARNING)


def build_stripe_client(settings: Settings) -> stripe.StripeClient:
    return stripe.StripeClient(
        settings.stripe_secret_key or "sk_unset",
        stripe_version=settings.stripe_api_version,
        max_network_retries=settings.stripe_max_network_retries,
    )


def create_app(
    settings: Optional[Settings] = None, client: Optional[stripe.StripeClient] = None
) -> Flask:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length

    CORS(app, resources={r"/*": {"origins": settings.cors_origins}})

    if client is None:
        client = build_stripe_client(settings)
    app.extensions["donate"] = {
        "settings": settings,
        "client": client,
        "subscriptions": SubscriptionCreator(client, settings),
        "webhooks": WebhookDispatcher(client, settings.stripe_webhook_secret),
    }

    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; subscriptions will be refused")
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhooks will fail verification")

    from donate.routes import donate_bp
    app.register_blueprint(donate_bp)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(413)
    def payload_too_large(error):
        logger.error(f"Payload too large (413): {error}")
        return jsonify({"error": "Payload Too Large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error (500): {error}")
        return jsonify({"error": "Internal Server Error"}), 500

    return app
