import pytest

from orders_api.services.pricing import amounts_match, compute_refund_amount, compute_service_fee


@pytest.mark.parametrize(
    ("price", "fee"),
    [(1, 100), (999.99, 100), (1000, 100), (1005, 101), (2500, 250), (12345, 1235)],
)
def test_service_fee(price, fee):
    assert compute_service_fee(price) == fee


def test_refund_is_ninety_five_percent_rounded_to_cents():
    assert compute_refund_amount(2500) == 2375.0
    assert compute_refund_amount(10.01) == 9.51
    assert compute_refund_amount(0.5) == 0.48


def test_amounts_match_at_cent_precision():
    assert amounts_match(0.1 + 0.2, 0.3)
    assert amounts_match(2750, 2750.0)
    assert not amounts_match(2750, 2749.99)
