class DonationError(Exception):
    """Base class for errors raised by the donation service."""


class InvalidAmountError(DonationError, ValueError):
    """The requested donation amount is missing, malformed or out of bounds."""


class SubscriptionError(DonationError):
    """A step of the subscription sequence produced an unusable result."""

    def __init__(self, message: str, step: str, customer_id=None, subscription_id=None):
        super().__init__(message)
        self.step = step
        self.customer_id = customer_id
        self.subscription_id = subscription_id


class WebhookVerificationError(DonationError):
    """An inbound webhook could not be authenticated."""
