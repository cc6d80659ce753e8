"""Crypto market data client backed by the CoinGecko public API"""

import logging
from typing import List, Optional

import aiohttp

from ..config.models import PricingConfig
from ..exceptions import ProviderError
from ..models import Quote
from .base import MarketDataProvider
from .http import HttpJsonClient


class CoinGeckoClient(HttpJsonClient, MarketDataProvider):
    """Simple price and daily market chart lookups by coin id"""

    def __init__(self, config: Optional[PricingConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or PricingConfig()
        super().__init__(self.config.request_timeout_seconds, session=session, logger=logger)

    @property
    def vs_currency(self) -> str:
        return self.config.vs_currency.lower()

    async def get_latest_price(self, identifier: str) -> Quote:
        url = f"{self.config.coingecko_base_url}/simple/price"
        data = await self._get_json(url, params={"ids": identifier, "vs_currencies": self.vs_currency})

        if not isinstance(data, dict):
            raise ProviderError("API response must be a JSON object")

        price = (data.get(identifier) or {}).get(self.vs_currency)
        if price is None:
            raise ProviderError(f"No {self.vs_currency} price returned for {identifier}")
        if price <= 0:
            raise ProviderError(f"Invalid price for {identifier}: {price}")

        return Quote(symbol=identifier, price=float(price), currency=self.vs_currency)

    async def get_historical_daily_prices(self, identifier: str, days: int) -> List[float]:
        """
        Daily close prices for the last `days` days, oldest first.

        The market chart endpoint counts days back from today and includes the
        current partial day, so `days - 1` is requested and the series is
        trimmed to at most `days` points.
        """
        if days < 1:
            raise ValueError(f"days must be at least 1, got {days}")

        url = f"{self.config.coingecko_base_url}/coins/{identifier}/market_chart"
        params = {
            "vs_currency": self.vs_currency,
            "days": str(max(days - 1, 1)),
            "interval": "daily",
        }
        data = await self._get_json(url, params=params)

        if not isinstance(data, dict):
            raise ProviderError("API response must be a JSON object")

        points = data.get("prices")
        if not isinstance(points, list):
            raise ProviderError(f"API response for {identifier} must contain a 'prices' list")

        prices = []
        for point in points:
            if not isinstance(point, (list, tuple)) or len(point) < 2:
                raise ProviderError(f"Malformed price point for {identifier}: {point!r}")
            prices.append(float(point[1]))

        self.logger.debug(f"Retrieved {len(prices)} daily prices for {identifier}")
        return prices[-days:]
