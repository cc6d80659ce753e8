"""
Pytest configuration and fixtures for paper rebalancer tests.
"""

import asyncio
import json
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from paper_rebalancer import (
    CryptoPosition,
    EquityPosition,
    MoneyAmount,
    Portfolio,
    ProviderError,
    Quote,
    ThresholdPolicy,
)
from paper_rebalancer.providers.base import MarketDataProvider, QuoteProvider


def usd(value) -> MoneyAmount:
    return MoneyAmount.of(value, "USD")


def equity(symbol: str, quantity, price) -> EquityPosition:
    return EquityPosition(symbol=symbol, quantity=quantity, last_price=usd(price))


def crypto(symbol: str, coin_id: str, quantity, price) -> CryptoPosition:
    return CryptoPosition(symbol=symbol, coin_id=coin_id, quantity=quantity, last_price=usd(price))


def make_portfolio(positions, target_weights: Dict[str, object], cash=0,
                   threshold="0.05", name: str = "test") -> Portfolio:
    return Portfolio(
        name=name,
        currency="USD",
        positions=positions,
        target_weights={k: Decimal(str(v)) for k, v in target_weights.items()},
        policy=ThresholdPolicy(threshold=Decimal(str(threshold))),
        cash=usd(cash),
    )


class FakeQuoteProvider(QuoteProvider):
    """Quote provider returning fixed prices, optionally failing or stalling"""

    def __init__(self, prices: Dict[str, float], currency: str = "USD",
                 fail: Optional[List[str]] = None, delays: Optional[Dict[str, float]] = None):
        self.prices = prices
        self.currency = currency
        self.fail = set(fail or [])
        self.delays = delays or {}
        self.calls: List[str] = []
        self.cache_flags: List[bool] = []

    async def get_latest_quote(self, symbol: str, use_cache: bool = False) -> Quote:
        self.calls.append(symbol)
        self.cache_flags.append(use_cache)
        await asyncio.sleep(self.delays.get(symbol, 0))
        if symbol in self.fail:
            raise ProviderError(f"quote service unavailable for {symbol}")
        return Quote(symbol=symbol, price=self.prices[symbol], currency=self.currency)


class FakeMarketDataProvider(MarketDataProvider):
    """Market data provider keyed by coin id"""

    def __init__(self, prices: Dict[str, float], history: Optional[Dict[str, List[float]]] = None):
        self.prices = prices
        self.history = history or {}
        self.calls: List[str] = []

    async def get_latest_price(self, identifier: str) -> Quote:
        self.calls.append(identifier)
        return Quote(symbol=identifier, price=self.prices[identifier], currency="USD")

    async def get_historical_daily_prices(self, identifier: str, days: int) -> List[float]:
        return self.history.get(identifier, [])[-days:]


class FakeResponse:

    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self):
        if isinstance(self.payload, str):
            return json.loads(self.payload)
        return self.payload

    async def text(self):
        return self.payload if isinstance(self.payload, str) else json.dumps(self.payload)


class FakeSession:
    """Stands in for aiohttp.ClientSession, serving canned responses in order"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        return self.responses.pop(0)


def chart(closes, currency="USD", market_price=None):
    meta = {"currency": currency}
    if market_price is not None:
        meta["regularMarketPrice"] = market_price
    return {"chart": {"result": [{"meta": meta, "indicators": {"quote": [{"close": closes}]}}], "error": None}}




@pytest.fixture
def two_asset_portfolio() -> Portfolio:
    """A: 10 @ $10, B: 5 @ $10, no cash, 50/50 targets"""
    return make_portfolio(
        positions=[equity("A", 10, 10), equity("B", 5, 10)],
        target_weights={"A": "0.5", "B": "0.5"},
    )


@pytest.fixture
def mixed_portfolio() -> Portfolio:
    """Equities and a crypto holding with a cash target"""
    return make_portfolio(
        positions=[
            equity("SPY", 4, 500),
            equity("NVDA", 10, 120),
            crypto("ETH", "ethereum", 2, 3000),
        ],
        target_weights={"SPY": "0.4", "NVDA": "0.3", "ETH": "0.2", "CASH": "0.1"},
        cash=800,
        threshold="1",
    )
