"""Equity quote client backed by the Yahoo Finance chart endpoint"""

import logging
import math
from datetime import datetime
from typing import Dict, Optional

import aiohttp

from ..config.models import PricingConfig
from ..exceptions import ProviderError
from ..models import Quote
from .base import QuoteProvider
from .http import HttpJsonClient
from .models import CachedQuote


class YahooQuoteClient(HttpJsonClient, QuoteProvider):
    """Latest daily close and currency per ticker, with a TTL quote cache"""

    headers = {"Accept": "application/json", "User-Agent": "Mozilla/5.0"}

    def __init__(self, config: Optional[PricingConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or PricingConfig()
        super().__init__(self.config.request_timeout_seconds, session=session, logger=logger)

        # Quote cache: symbol -> CachedQuote
        self._quote_cache: Dict[str, CachedQuote] = {}
        self._cache_ttl_seconds = self.config.price_cache_ttl_seconds

    async def get_latest_quote(self, symbol: str, use_cache: bool = False) -> Quote:
        """
        Get the latest close for a ticker.

        Args:
            symbol: Ticker symbol
            use_cache: If True, returns a cached quote within TTL when available
        """
        now = datetime.now()
        if use_cache:
            cached_entry = self._quote_cache.get(symbol)
            if cached_entry:
                age_seconds = (now - cached_entry.cached_at).total_seconds()
                if age_seconds <= self._cache_ttl_seconds:
                    self.logger.debug(f"Using cached quote for {symbol} (age: {age_seconds:.1f}s)")
                    return cached_entry.quote

        url = f"{self.config.yahoo_base_url}/v8/finance/chart/{symbol}"
        data = await self._get_json(url, params={"range": "1d", "interval": "1d"})
        quote = self._parse_chart(symbol, data)

        self._quote_cache[symbol] = CachedQuote(quote=quote, cached_at=now)
        self.logger.debug(f"Retrieved quote {symbol} -> {quote.price:.2f} {quote.currency}")
        return quote

    def _parse_chart(self, symbol: str, data) -> Quote:
        if not isinstance(data, dict):
            raise ProviderError("API response must be a JSON object")

        chart = data.get("chart") or {}
        if chart.get("error"):
            raise ProviderError(f"Chart API returned error for {symbol}: {chart['error']}")

        results = chart.get("result") or []
        if not results:
            raise ProviderError(f"No chart data returned for {symbol}")
        result = results[0]

        currency = (result.get("meta") or {}).get("currency")
        if not currency:
            raise ProviderError(f"No currency in chart metadata for {symbol}")

        quotes = (result.get("indicators") or {}).get("quote") or [{}]
        closes = [c for c in quotes[0].get("close") or [] if c is not None and math.isfinite(c)]
        if closes:
            last_close = closes[-1]
        else:
            last_close = (result.get("meta") or {}).get("regularMarketPrice")

        if last_close is None or last_close <= 0:
            raise ProviderError(f"No valid close price for {symbol}")

        return Quote(symbol=symbol, price=float(last_close), currency=currency)
