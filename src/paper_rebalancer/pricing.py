"""Concurrent price refresh with all-or-nothing commit"""

import asyncio
import logging
import math
from typing import Dict, Iterable, Optional, Tuple

from .config.models import PricingConfig
from .exceptions import CurrencyMismatchError, PriceFetchFailedError
from .models import AssetClass
from .money import MoneyAmount
from .portfolio import Portfolio
from .providers.base import MarketDataProvider, QuoteProvider


class PriceRefresher:
    """
    Fan out one price fetch per position and commit only complete batches.

    Equities are priced by the quote provider and crypto holdings by the
    market data provider. Fetches run concurrently and completions are staged
    in arrival order; the portfolio is only touched once every fetch has
    succeeded, so a failed refresh leaves all previous prices in place.
    """

    def __init__(self, quote_provider: Optional[QuoteProvider] = None,
                 market_data_provider: Optional[MarketDataProvider] = None,
                 timeout_seconds: float = 10.0,
                 logger: Optional[logging.Logger] = None):
        self.quote_provider = quote_provider
        self.market_data_provider = market_data_provider
        self.timeout_seconds = timeout_seconds
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: PricingConfig, session=None,
                    logger: Optional[logging.Logger] = None) -> "PriceRefresher":
        from .providers.coingecko import CoinGeckoClient
        from .providers.yahoo import YahooQuoteClient

        return cls(
            quote_provider=YahooQuoteClient(config, session=session, logger=logger),
            market_data_provider=CoinGeckoClient(config, session=session, logger=logger),
            timeout_seconds=config.request_timeout_seconds,
            logger=logger,
        )

    async def _fetch_one(self, target, currency: str, use_cache: bool = False) -> Tuple[str, MoneyAmount]:
        symbol = target.symbol
        if target.asset_class == AssetClass.CRYPTO:
            provider = self.market_data_provider
            call = provider.get_latest_price if provider else None
            options = {}
        else:
            provider = self.quote_provider
            call = provider.get_latest_quote if provider else None
            options = {"use_cache": use_cache}

        if call is None:
            raise PriceFetchFailedError(symbol, f"no price provider configured for {target.asset_class} holdings")

        try:
            quote = await asyncio.wait_for(call(target.price_key, **options), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            self.logger.error(f"Price fetch for {symbol} timed out after {self.timeout_seconds}s")
            raise PriceFetchFailedError(symbol, f"timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            self.logger.error(f"Price fetch for {symbol} failed: {e}")
            raise PriceFetchFailedError(symbol, str(e)) from e

        if not math.isfinite(quote.price) or quote.price <= 0:
            raise PriceFetchFailedError(symbol, f"invalid price {quote.price}")
        if quote.currency != currency:
            raise CurrencyMismatchError(
                f"{symbol} quoted in {quote.currency}, portfolio settles in {currency}", symbol=symbol
            )
        return symbol, quote.to_money()

    async def fetch_prices(self, targets: Iterable, currency: str,
                           use_cache: bool = False) -> Dict[str, MoneyAmount]:
        """
        Fetch prices for every target concurrently.

        Targets only need `symbol`, `asset_class` and `price_key`, so both
        positions and position configs can be priced. `use_cache` lets the
        quote provider answer from its TTL cache.

        Raises:
            PriceFetchFailedError: For the first fetch that fails; the rest are cancelled
            CurrencyMismatchError: If a quote is not in `currency`
        """
        tasks = [asyncio.create_task(self._fetch_one(target, currency, use_cache)) for target in targets]
        staged: Dict[str, MoneyAmount] = {}
        if not tasks:
            return staged

        try:
            for next_completed in asyncio.as_completed(tasks):
                symbol, price = await next_completed
                staged[symbol] = price
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return staged

    async def refresh(self, portfolio: Portfolio, use_cache: bool = False) -> Dict[str, MoneyAmount]:
        """Refresh every position price; on failure no price is changed"""
        source = "cache or provider" if use_cache else "provider"
        self.logger.info(f"Refreshing prices for {len(portfolio.positions)} positions from {source}")
        staged = await self.fetch_prices(portfolio.positions, portfolio.currency, use_cache=use_cache)

        for position in portfolio.positions:
            position.last_price = staged[position.symbol]

        self.logger.info(
            "Retrieved prices: " + ", ".join(f"{symbol} -> {price}" for symbol, price in staged.items())
        )
        return staged
