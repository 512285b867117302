from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from donate.errors import InvalidAmountError

MIN_AMOUNT_CENTS = 300
MAX_AMOUNT_CENTS = 10_000_000
MIN_CUSTOM_DOLLARS = MIN_AMOUNT_CENTS // 100
MAX_CUSTOM_DOLLARS = MAX_AMOUNT_CENTS // 100

INVALID_AMOUNT_MESSAGE = "Invalid amount. Must be between $3 and $100,000."

TIERS = (
    {"value": "monthly-10", "label": "$10", "amount": 1000},
    {"value": "monthly-20", "label": "$20", "amount": 2000},
    {"value": "monthly-50", "label": "$50", "amount": 5000},
)
DEFAULT_TIER = "monthly-10"

_TIERS_BY_VALUE = {tier["value"]: tier for tier in TIERS}


def format_amount(amount_cents: int) -> str:
    amount = Decimal(amount_cents) / Decimal("100")
    return f"{amount:.2f}"


def whole_units(amount_cents: int) -> int:
    """Round a cents amount to whole currency units, halves rounding up."""
    amount = Decimal(amount_cents) / Decimal("100")
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_amount(amount_cents: int) -> int:
    if not MIN_AMOUNT_CENTS <= amount_cents <= MAX_AMOUNT_CENTS:
        raise InvalidAmountError(INVALID_AMOUNT_MESSAGE)
    return amount_cents


def coerce_amount(raw) -> int:
    """Turn an untrusted JSON ``amount`` (cents) into a bounded integer.

    Accepts ints, integral floats and numeric strings. Booleans, fractional
    cents and anything non-numeric are rejected.
    """
    if isinstance(raw, bool) or raw is None:
        raise InvalidAmountError(INVALID_AMOUNT_MESSAGE)
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError):
        raise InvalidAmountError(INVALID_AMOUNT_MESSAGE)
    if not amount.is_finite() or amount != amount.to_integral_value():
        raise InvalidAmountError(INVALID_AMOUNT_MESSAGE)
    return validate_amount(int(amount))


def _parse_dollars(text: str):
    try:
        amount = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not amount.is_finite():
        return None
    return amount


def custom_amount_admitted(text: str) -> bool:
    """Keystroke filter for the free-form dollar field.

    Only whole dollars are admitted, matching the input's step of 1.
    """
    if text == "":
        return True
    amount = _parse_dollars(text)
    if amount is None or amount != amount.to_integral_value():
        return False
    return MIN_CUSTOM_DOLLARS <= amount <= MAX_CUSTOM_DOLLARS


def tier_context() -> dict:
    return {
        "tiers": list(TIERS),
        "default_tier": DEFAULT_TIER,
        "min_amount_cents": MIN_AMOUNT_CENTS,
        "max_amount_cents": MAX_AMOUNT_CENTS,
        "min_custom_dollars": MIN_CUSTOM_DOLLARS,
        "max_custom_dollars": MAX_CUSTOM_DOLLARS,
        "invalid_amount_message": INVALID_AMOUNT_MESSAGE,
    }


class DonationAmount:
    """Form state for a donation: a tier selection or a free-form entry.

    Selecting a tier overwrites the free-form field with the tier's dollar
    value. Entering a free-form value clears the tier. The last write wins.

    donate/static/donation-form.js implements the same rules in the browser and
    must stay in step with this class.
    """

    def __init__(self, selected_tier: str = DEFAULT_TIER, custom_amount: str = ""):
        self.selected_tier = selected_tier
        self.custom_amount = custom_amount

    def select_tier(self, value: str) -> None:
        tier = _TIERS_BY_VALUE.get(value)
        if tier is None:
            raise InvalidAmountError(f"Unknown donation option: {value}")
        self.selected_tier = value
        self.custom_amount = str(tier["amount"] // 100)

    def enter_custom(self, text: str) -> bool:
        if not custom_amount_admitted(text):
            return False
        self.custom_amount = text
        self.selected_tier = ""
        return True

    def resolve(self) -> int:
        if self.custom_amount:
            dollars = _parse_dollars(self.custom_amount)
            if dollars is None:
                return 0
            return int(dollars) * 100
        tier = _TIERS_BY_VALUE.get(self.selected_tier)
        return tier["amount"] if tier else 0

    def submit(self) -> int:
        return validate_amount(self.resolve())
