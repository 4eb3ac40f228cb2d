import pytest

from perpvamm.amm import TradeDirection, calculate_swap_output
from perpvamm.errors import ErrorCode, PerpError


def _expect(code, *args):
    with pytest.raises(PerpError) as exc:
        calculate_swap_output(*args)
    assert exc.value.code is code


@pytest.mark.parametrize("base, quote", [(0, 10), (10, 0), (0, 0)])
def test_empty_reserves_are_unhealthy(base, quote):
    _expect(ErrorCode.UNHEALTHY_MARKET_STATE, 1, base, quote, TradeDirection.LONG)


def test_long_worked_example():
    assert calculate_swap_output(500, 1000, 1000, TradeDirection.LONG) == (2000, 500)


def test_short_worked_example():
    assert calculate_swap_output(1000, 1000, 1000, TradeDirection.SHORT) == (500, 2000)


def test_long_invariants():
    base, quote, amount = 10**12, 3 * 10**12, 12345
    new_quote, new_base = calculate_swap_output(amount, base, quote, TradeDirection.LONG)
    assert new_base == base - amount
    assert new_quote >= quote
    assert new_quote * new_base <= base * quote


def test_short_invariants():
    base, quote, amount = 10**12, 3 * 10**12, 12345
    new_quote, new_base = calculate_swap_output(amount, base, quote, TradeDirection.SHORT)
    assert new_base == base + amount
    assert new_quote <= quote
    assert new_quote * new_base <= base * quote


def test_long_then_short_restores_base_reserve():
    base, quote, amount = 10**9, 5 * 10**9, 1000
    q1, b1 = calculate_swap_output(amount, base, quote, TradeDirection.LONG)
    _, b2 = calculate_swap_output(amount, b1, q1, TradeDirection.SHORT)
    assert b2 == base


def test_long_larger_than_reserve_overflows():
    _expect(ErrorCode.MATH_OVERFLOW, 11, 10, 10, TradeDirection.LONG)


def test_long_draining_reserve_overflows():
    _expect(ErrorCode.MATH_OVERFLOW, 10, 10, 10, TradeDirection.LONG)


def test_k_overflow():
    _expect(ErrorCode.MATH_OVERFLOW, 1, 2**64, 2**64, TradeDirection.SHORT)