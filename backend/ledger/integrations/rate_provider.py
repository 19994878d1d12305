# ledger/integrations/rate_provider.py
"""
exchangerate-api.com client (pair endpoint only).
- fetch_pair(base, quote): GET {base_url}/{api_key}/pair/{base}/{quote}
  and return `conversion_rate` as a Decimal.

Every failure (no key, network, timeout, HTTP status, body format) is raised as
RateResolutionFailure; callers decide what to do with it.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from ledger.config import Settings
from ledger.core.errors import RateResolutionFailure


class ExchangeRateClient:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # tests plug an httpx.MockTransport in here
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "ExchangeRateClient":
        return cls(
            api_key=settings.exchange_api_key,
            base_url=settings.exchange_api_base_url,
            timeout=settings.exchange_api_timeout,
            transport=transport,
        )

    def fetch_pair(self, base: str, quote: str) -> Decimal:
        """1 `base` = N `quote`; raises RateResolutionFailure when N cannot be obtained."""
        if not self.api_key:
            raise RateResolutionFailure("EXCHANGE_API_KEY is not configured")

        url = f"{self.base_url}/{self.api_key}/pair/{base.upper()}/{quote.upper()}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.get(url)
        except httpx.TimeoutException as e:
            raise RateResolutionFailure(f"rate oracle timed out: {e}") from e
        except httpx.HTTPError as e:
            raise RateResolutionFailure(f"rate oracle unreachable: {e}") from e

        if resp.status_code != 200:
            raise RateResolutionFailure(f"rate oracle HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            raise RateResolutionFailure("rate oracle returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise RateResolutionFailure("rate oracle returned an unexpected body")

        # error payloads look like {"result": "error", "error-type": "invalid-key"}
        if data.get("result", "success") != "success":
            raise RateResolutionFailure(f"rate oracle error: {data.get('error-type', 'unknown')}")

        raw = data.get("conversion_rate")
        if raw is None or isinstance(raw, bool):
            raise RateResolutionFailure("conversion_rate missing from rate oracle response")
        try:
            rate = Decimal(str(raw))
        except InvalidOperation as e:
            raise RateResolutionFailure(f"conversion_rate is not numeric: {raw!r}") from e
        if not rate.is_finite() or rate <= 0:
            raise RateResolutionFailure(f"conversion_rate is not a positive number: {raw!r}")
        return rate
