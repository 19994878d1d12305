# ledger/core/constants.py
"""Policy values shared by the rate resolver and the order ledger."""
from decimal import Decimal

LOCAL_CURRENCY = "HNL"
FOREIGN_CURRENCY = "USD"
SUPPORTED_CURRENCIES = (LOCAL_CURRENCY, FOREIGN_CURRENCY)

# Added to the oracle rate to approximate the bank's selling price.
RATE_SPREAD = Decimal("0.18")
# Used whenever the oracle cannot be reached or answers garbage.
FALLBACK_RATE = Decimal("26.60")

LOCAL_RATE = Decimal("1")

# Decimal places kept by the orders table; values with more places are rejected, not rounded.
RATE_SCALE = 6
AMOUNT_SCALE = 2
DEFAULT_CARRIER = "Unknown"

EXCHANGE_API_BASE_URL = "https://v6.exchangerate-api.com/v6"
