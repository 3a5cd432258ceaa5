from decimal import Decimal

import httpx
import pytest

from config import settings
from modules.pricing import feed_service
from modules.pricing.calculator import TROY_OUNCE_GRAMS


class FakeResponse:

    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", settings.METALS_API_URL)
            raise httpx.HTTPStatusError("error", request=request, response=httpx.Response(self.status_code, request=request))

    def json(self):
        return self._payload


@pytest.fixture()
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "METALS_API_KEY", "test-key")


def _serve(monkeypatch, payload, status_code=200):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append({"url": url, "params": params, "timeout": timeout})
        return FakeResponse(payload, status_code)

    monkeypatch.setattr(httpx, "get", fake_get)
    return calls


def test_rates_converted_to_per_gram(monkeypatch, api_key):
    # 1 INR buys 1/186621 oz of gold → 186621 INR per oz → 6000 INR per gram
    calls = _serve(monkeypatch, {
        "success": True,
        "rates": {"XAU": str(Decimal(1) / (TROY_OUNCE_GRAMS * 6000)), "XAG": str(Decimal(1) / (TROY_OUNCE_GRAMS * 80))},
    })
    rates = feed_service.fetch_spot_rates()
    assert set(rates) == {"gold", "silver"}
    assert rates["gold"].quantize(Decimal("0.01")) == Decimal("6000.00")
    assert rates["silver"].quantize(Decimal("0.01")) == Decimal("80.00")
    assert calls[0]["params"]["symbols"] == "XAU,XAG,XPT"
    assert calls[0]["params"]["base"] == settings.CURRENCY


def test_missing_key(monkeypatch):
    monkeypatch.setattr(settings, "METALS_API_KEY", "")
    with pytest.raises(ValueError):
        feed_service.fetch_spot_rates()


@pytest.mark.parametrize("payload", [
    {"success": False, "error": {"info": "invalid key"}},
    {"success": True},
    {"success": True, "rates": {}},
    {"success": True, "rates": {"XAU": 0}},
])
def test_invalid_payloads(monkeypatch, api_key, payload):
    _serve(monkeypatch, payload)
    with pytest.raises(ValueError):
        feed_service.fetch_spot_rates()


def test_http_error_propagates(monkeypatch, api_key):
    _serve(monkeypatch, {}, status_code=502)
    with pytest.raises(httpx.HTTPError):
        feed_service.fetch_spot_rates()
