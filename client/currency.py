import logging
from typing import Union

from errors import UnsupportedCurrencyPair
from models import Currency

logger = logging.getLogger(__name__)

# Static table, no live rates.
EXCHANGE_RATES = {
    "MUR": {"USD": 0.021, "EUR": 0.019},
    "USD": {"MUR": 47.62, "EUR": 0.90},
    "EUR": {"MUR": 52.63, "USD": 1.11},
}

CurrencyCode = Union[Currency, str]


def _code(currency: CurrencyCode) -> str:
    return str(getattr(currency, "value", currency)).upper()


def convert_currency(amount: float, from_currency: CurrencyCode, to_currency: CurrencyCode, strict: bool = False) -> float:
    source, target = _code(from_currency), _code(to_currency)
    if source == target:
        return amount

    rate = EXCHANGE_RATES.get(source, {}).get(target)
    if rate is None:
        if strict:
            raise UnsupportedCurrencyPair(f"Conversion from {source} to {target} not supported")
        logger.warning("Conversion from %s to %s not supported", source, target)
        return amount

    return round(amount * rate, 2)


def format_price(amount: float, currency: CurrencyCode = Currency.MUR) -> str:
    if float(amount).is_integer():
        return f"{_code(currency)} {amount:,.0f}"
    return f"{_code(currency)} {amount:,.2f}"
