import aiohttp
from aiohttp import TCPConnector, ClientTimeout
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

JSON_RPC_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class HTTPSessionManager:
    """One pooled aiohttp session shared by the JSON-RPC clients of a run"""

    def __init__(self, pool_size: int = 10, timeout: float = 10, headers: Optional[Dict[str, str]] = None):
        self.pool_size = pool_size
        self.timeout = timeout
        self.headers = {**JSON_RPC_HEADERS, **(headers or {})}
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings) -> "HTTPSessionManager":
        return cls(pool_size=settings.pool_size, timeout=settings.request_timeout)

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    @property
    def started(self) -> bool:
        return self._session is not None and not self._session.closed

    async def start(self):
        """Open the session; a no-op while one is already open"""
        if self.started:
            return
        self._session = aiohttp.ClientSession(
            connector=TCPConnector(limit=self.pool_size, enable_cleanup_closed=True),
            timeout=ClientTimeout(total=self.timeout),
            headers=self.headers,
        )
        logger.debug(f"RPC session opened (pool={self.pool_size}, timeout={self.timeout}s)")

    async def stop(self):
        if self.started:
            await self._session.close()
            logger.debug("RPC session closed")
        self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if not self.started:
            raise RuntimeError("Session manager not started")
        return self._session
