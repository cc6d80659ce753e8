"""Shared aiohttp JSON fetching for market data clients"""

import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import ProviderError


class HttpJsonClient:
    """GET JSON documents, reusing an injected session when one is given"""

    headers: Dict[str, str] = {"Accept": "application/json"}

    def __init__(self, timeout_seconds: float, session: Optional[aiohttp.ClientSession] = None,
                 logger: Optional[logging.Logger] = None):
        self.timeout_seconds = timeout_seconds
        self._session = session
        self.logger = logger or logging.getLogger(__name__)

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self.logger.debug(f"GET {url} params={params}")
        try:
            if self._session is not None:
                return await self._request(self._session, url, params)
            async with aiohttp.ClientSession() as session:
                return await self._request(session, url, params)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON response from {url}: {e}")
            raise ProviderError(f"Invalid JSON response from {url}") from e
        except aiohttp.ClientError as e:
            self.logger.error(f"HTTP error requesting {url}: {e}")
            raise ProviderError(f"HTTP error requesting {url}: {e}") from e

    async def _request(self, session, url: str, params: Optional[Dict[str, Any]]) -> Any:
        async with session.get(
            url,
            params=params,
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
        ) as response:
            if response.status != 200:
                response_text = await response.text()
                raise ProviderError(f"API returned status {response.status}: {response_text}")
            return await response.json()
