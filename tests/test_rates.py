"""
Tests for RateResolver: local rate, custom rate, oracle + spread, fallback.
"""
import logging
from decimal import Decimal

import pytest

from conftest import StubRateClient
from ledger.core import constants
from ledger.core.errors import InvalidRate, RateResolutionFailure
from ledger.services.rates import RateResolver, parse_custom_rate


def _resolver(client):
    return RateResolver(client, local_currency="HNL", spread=Decimal("0.18"), fallback_rate=Decimal("26.60"))


def test_local_currency_is_one_without_oracle_call():
    client = StubRateClient(error=RateResolutionFailure("must not be called"))
    assert _resolver(client).resolve("HNL") == Decimal("1")
    assert _resolver(client).resolve("hnl", custom_rate="30") == Decimal("1")
    assert client.calls == []


def test_custom_rate_is_used_verbatim():
    client = StubRateClient(error=RateResolutionFailure("must not be called"))
    assert _resolver(client).resolve("USD", custom_rate="25.00") == Decimal("25.00")
    assert _resolver(client).resolve("USD", custom_rate=24.5) == Decimal("24.5")
    assert client.calls == []


@pytest.mark.parametrize("value", ["abc", "-1", "0", "NaN", "Infinity", True])
def test_invalid_custom_rate(value):
    with pytest.raises(InvalidRate):
        _resolver(StubRateClient(rate="26")).resolve("USD", custom_rate=value)


@pytest.mark.parametrize("value", [None, "", "   "])
def test_blank_custom_rate_means_not_supplied(value):
    assert parse_custom_rate(value) is None


def test_custom_rate_decimal_places():
    assert parse_custom_rate("25.123456") == Decimal("25.123456")
    # trailing zeros do not count
    assert parse_custom_rate("25.1000000") == Decimal("25.1")
    with pytest.raises(InvalidRate, match="decimal places"):
        parse_custom_rate("25.1234567")


def test_oracle_rate_is_rounded_to_stored_scale():
    rate = _resolver(StubRateClient(rate="26.3812345")).resolve("USD")
    assert rate == Decimal("26.561235")
    assert rate.as_tuple().exponent == -6


def test_oracle_rate_gets_the_spread():
    client = StubRateClient(rate="26.38")
    assert _resolver(client).resolve("USD") == Decimal("26.56")
    assert client.calls == [("USD", "HNL")]


def test_oracle_failure_falls_back_and_logs(caplog):
    client = StubRateClient(error=RateResolutionFailure("oracle down"))
    with caplog.at_level(logging.WARNING, logger="ledger.rates"):
        rate = _resolver(client).resolve("USD")

    assert rate == Decimal("26.60")
    assert "fallback" in caplog.text
    assert "oracle down" in caplog.text


def test_quote_uses_the_same_policy():
    assert _resolver(StubRateClient(rate="26.00")).quote("USD") == Decimal("26.18")
    assert _resolver(StubRateClient(error=RateResolutionFailure("x"))).quote("USD") == Decimal("26.60")
    assert _resolver(StubRateClient(rate="99")).quote("HNL") == Decimal("1")


def test_default_policy_constants():
    resolver = RateResolver(StubRateClient(error=RateResolutionFailure("x")))
    assert resolver.spread == constants.RATE_SPREAD
    assert resolver.resolve("USD") == constants.FALLBACK_RATE
