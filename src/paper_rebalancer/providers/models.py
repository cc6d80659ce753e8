from pydantic import BaseModel
from datetime import datetime
from ..models import Quote

class CachedQuote(BaseModel):
    """Cached quote with timestamp for TTL validation"""
    quote: Quote
    cached_at: datetime
