from .base import QuoteProvider, MarketDataProvider
from .coingecko import CoinGeckoClient
from .yahoo import YahooQuoteClient
from .models import CachedQuote

__all__ = [
    "QuoteProvider",
    "MarketDataProvider",
    "CoinGeckoClient",
    "YahooQuoteClient",
    "CachedQuote",
]
