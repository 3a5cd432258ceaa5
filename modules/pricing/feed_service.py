"""
Pricing Module - External Price Feed Service
===============================================
Fetches live spot prices (per troy ounce) from a Metals-API compatible
endpoint and converts them to per-gram rates of the pure metal.
"""

import logging
from decimal import Decimal
from typing import Dict

import httpx

from config import settings
from modules.pricing.calculator import spot_per_ounce_to_gram
from modules.pricing.models import GOLD, SILVER, PLATINUM

logger = logging.getLogger("jewelcraft.pricing.feed")

# Metals-API symbol → asset code
SYMBOLS = {
    "XAU": GOLD,
    "XAG": SILVER,
    "XPT": PLATINUM,
}


def _fetch_spot_prices() -> Dict[str, Decimal]:
    """
    Fetch spot prices for all metals in one HTTP call.

    Returns:
        dict mapping symbol → price per troy ounce in settings.CURRENCY
        e.g. {"XAU": Decimal("195432.10"), "XAG": Decimal("2350.5")}

    Raises:
        ValueError: If API key is missing, the response is invalid or a rate is non-positive.
        httpx.HTTPError: On network/HTTP errors.
    """
    if not settings.METALS_API_KEY:
        raise ValueError("METALS_API_KEY is not configured")

    resp = httpx.get(
        settings.METALS_API_URL,
        params={
            "access_key": settings.METALS_API_KEY,
            "base": settings.CURRENCY,
            "symbols": ",".join(SYMBOLS),
        },
        timeout=settings.RATE_FEED_TIMEOUT,
    )
    resp.raise_for_status()

    data = resp.json()
    if not data.get("success"):
        error = data.get("error") or {}
        raise ValueError(f"Metals API returned success=false: {error.get('info', data)}")
    rates = data.get("rates")
    if not isinstance(rates, dict):
        raise ValueError(f"Metals API missing 'rates' object: {data}")

    result: Dict[str, Decimal] = {}
    for symbol in SYMBOLS:
        rate = rates.get(symbol)
        if rate is None:
            continue
        rate = Decimal(str(rate))
        if rate <= 0:
            raise ValueError(f"Invalid {symbol} rate from Metals API: {rate}")
        # Rates are ounces per one unit of base currency; invert to price per ounce
        result[symbol] = Decimal(1) / rate
    return result


def fetch_spot_rates() -> Dict[str, Decimal]:
    """
    Fetch per-gram rates for every supported metal.

    Returns:
        dict mapping asset code → rate per gram, e.g. {"gold": Decimal("6283.44")}

    Raises:
        ValueError: If the response is invalid or returns no prices.
        httpx.HTTPError: On network/HTTP errors.
    """
    prices = _fetch_spot_prices()
    result = {}
    for symbol, price in prices.items():
        result[SYMBOLS[symbol]] = spot_per_ounce_to_gram(price)

    if not result:
        raise ValueError("Metals API returned no usable prices")

    logger.info("Fetched spot rates: " + ", ".join(f"{k}={v:.2f}/g" for k, v in result.items()))
    return result
