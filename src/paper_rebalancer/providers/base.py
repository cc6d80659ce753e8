from abc import ABC, abstractmethod
from typing import List
from ..models import Quote

class QuoteProvider(ABC):
    """Abstract source of latest equity quotes"""

    @abstractmethod
    async def get_latest_quote(self, symbol: str, use_cache: bool = False) -> Quote:
        """Get latest close price and currency for a symbol, optionally from a cache"""
        pass

class MarketDataProvider(ABC):
    """Abstract source of crypto market data"""

    @abstractmethod
    async def get_latest_price(self, identifier: str) -> Quote:
        """Get latest price for a market data identifier"""
        pass

    @abstractmethod
    async def get_historical_daily_prices(self, identifier: str, days: int) -> List[float]:
        """Get chronological daily close prices, at most `days` entries"""
        pass
