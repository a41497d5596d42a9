from decimal import ROUND_HALF_UP, Decimal

FLAT_SERVICE_FEE = 100
SERVICE_FEE_THRESHOLD = 1000
SERVICE_FEE_RATE = Decimal("0.10")
REFUND_RATE = Decimal("0.95")


def compute_service_fee(price: float) -> int:
    """Flat fee below the threshold, otherwise 10% of the price rounded half up."""
    if price < SERVICE_FEE_THRESHOLD:
        return FLAT_SERVICE_FEE
    fee = (Decimal(str(price)) * SERVICE_FEE_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(fee)


def compute_refund_amount(price: float) -> float:
    refund = (Decimal(str(price)) * REFUND_RATE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(refund)


def _to_cents(amount: float) -> Decimal:
    return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def amounts_match(expected: float, received: float) -> bool:
    return _to_cents(expected) == _to_cents(received)
