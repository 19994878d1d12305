# ledger/services/rates.py
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from ledger.config import Settings
from ledger.core import constants
from ledger.core.errors import InvalidRate, RateResolutionFailure
from ledger.integrations.rate_provider import ExchangeRateClient

logger = logging.getLogger("ledger.rates")

_RATE_QUANTUM = Decimal(1).scaleb(-constants.RATE_SCALE)


def decimal_places(value: Decimal) -> int:
    """Significant decimal places: 25.10 -> 1, 100 -> 0."""
    return max(0, -Decimal(value).normalize().as_tuple().exponent)


def parse_custom_rate(value: Any) -> Optional[Decimal]:
    """
    Caller-supplied rate -> positive Decimal, stored as given.
    None / "" mean "not supplied" and return None; anything else that is not a
    positive finite number with at most RATE_SCALE decimals raises InvalidRate.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, bool):
        raise InvalidRate(f"Invalid exchange rate: {value!r}")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise InvalidRate(f"Invalid exchange rate: {value!r}")
    if not rate.is_finite() or rate <= 0:
        raise InvalidRate(f"Exchange rate must be a positive number: {value!r}")
    if decimal_places(rate) > constants.RATE_SCALE:
        raise InvalidRate(f"Exchange rate must have at most {constants.RATE_SCALE} decimal places: {value!r}")
    return rate


class RateResolver:
    """
    Produces the exchange rate stored on a new order.

    local currency           -> 1, no oracle call
    foreign + custom rate    -> the custom rate verbatim, no oracle call
    foreign, no custom rate  -> oracle rate + spread, or fallback_rate when the oracle fails
    """

    def __init__(
        self,
        client: ExchangeRateClient,
        local_currency: str = constants.LOCAL_CURRENCY,
        spread: Decimal = constants.RATE_SPREAD,
        fallback_rate: Decimal = constants.FALLBACK_RATE,
    ):
        self.client = client
        self.local_currency = local_currency.upper()
        self.spread = Decimal(spread)
        self.fallback_rate = Decimal(fallback_rate)

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[ExchangeRateClient] = None) -> "RateResolver":
        return cls(
            client=client or ExchangeRateClient.from_settings(settings),
            local_currency=settings.local_currency,
            spread=settings.rate_spread,
            fallback_rate=settings.fallback_rate,
        )

    def is_local(self, currency: str) -> bool:
        return currency.upper() == self.local_currency

    def quote(self, currency: str) -> Decimal:
        """Current rate for 1 `currency` in local currency; never raises for oracle failures."""
        if self.is_local(currency):
            return constants.LOCAL_RATE
        try:
            rate = self.client.fetch_pair(currency, self.local_currency)
        except RateResolutionFailure as e:
            logger.warning(
                "Rate oracle failed for %s/%s, using fallback %s: %s",
                currency, self.local_currency, self.fallback_rate, e,
            )
            return self.fallback_rate
        # rounded to the scale of orders.exchange_rate
        return (rate + self.spread).quantize(_RATE_QUANTUM, rounding=ROUND_HALF_UP)

    def resolve(self, currency: str, custom_rate: Any = None) -> Decimal:
        if self.is_local(currency):
            return constants.LOCAL_RATE
        rate = parse_custom_rate(custom_rate)
        if rate is not None:
            return rate
        return self.quote(currency)
