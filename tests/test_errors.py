import pytest

from perpvamm.errors import ErrorCode, PerpError


def test_message_matches_code():
    err = PerpError(ErrorCode.MATH_OVERFLOW)
    assert err.code is ErrorCode.MATH_OVERFLOW
    assert str(err) == "Math overflow"


def test_market_paused_message():
    err = PerpError(ErrorCode.MARKET_PAUSED)
    assert str(err) == "Market is paused"
    assert ErrorCode.MARKET_PAUSED.message == "Market is paused"


def test_codes_start_at_6000_and_are_consecutive():
    values = sorted(int(PerpError(code).code) for code in ErrorCode)
    assert values[0] == 6000
    assert values == list(range(values[0], values[0] + len(values)))
    assert PerpError(6000).code is ErrorCode.INVALID_CALCULATION


def test_every_code_has_a_message():
    for code in ErrorCode:
        text = str(PerpError(code))
        assert text
        assert text == code.message


def test_error_is_an_exception_carrying_its_code():
    err = PerpError(ErrorCode.STALE_ORACLE_PRICE)
    assert isinstance(err, Exception)
    assert err.code is ErrorCode.STALE_ORACLE_PRICE
    assert str(err) == "Oracle price is stale"


def test_integer_code_is_normalised():
    err = PerpError(int(ErrorCode.PRICE_SLIPPAGE))
    assert err.code is ErrorCode.PRICE_SLIPPAGE