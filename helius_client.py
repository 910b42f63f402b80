import aiohttp
import logging
from typing import Dict, Any, Optional, Protocol
from aiohttp_retry import RetryClient, ExponentialRetry
import asyncio
from connection_pool import HTTPSessionManager

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """JSON-RPC error object returned by the node."""

    def __init__(self, method: str, error: Any):
        self.method = method
        self.error = error
        super().__init__(f"{method} failed: {error}")


class TransactionSource(Protocol):
    async def get_parsed_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        ...


class HeliusClient:
    def __init__(
        self,
        rpc_url: str,
        session_manager: HTTPSessionManager,
        commitment: str = "confirmed",
        retry_attempts: int = 3,
    ):
        if not rpc_url:
            raise ValueError("rpc_url must be provided")
        self.rpc_url = rpc_url
        self.session_manager = session_manager
        self.commitment = commitment
        self.client: Optional[RetryClient] = None

        self.retry_options = ExponentialRetry(
            attempts=retry_attempts,
            statuses={429, 500, 502, 503, 504},
            exceptions={aiohttp.ClientError, asyncio.TimeoutError},
            factor=2
        )

    async def __aenter__(self):
        """Async context manager entry"""
        await self.session_manager.start()
        self.client = RetryClient(
            client_session=self.session_manager.session,
            retry_options=self.retry_options
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        """Async context manager exit with proper cleanup"""
        await self.close()

        # Log unexpected exceptions
        if exc_type and not isinstance(exc, asyncio.CancelledError):
            logger.error(f"HeliusClient error: {exc}", exc_info=True)

    async def _rpc(self, method: str, params: list) -> Any:
        if not self.client:
            raise RuntimeError("Client not initialized")

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params
        }

        async with self.client.post(self.rpc_url, json=payload) as response:
            response.raise_for_status()
            data = await response.json()

        if data.get("error"):
            raise RpcError(method, data["error"])
        return data.get("result")

    async def get_parsed_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """Fetch a transaction with jsonParsed instructions; None if the node does not know it"""
        result = await self._rpc("getTransaction", [
            signature,
            {
                "encoding": "jsonParsed",
                "commitment": self.commitment,
                "maxSupportedTransactionVersion": 0
            }
        ])
        if result is None:
            logger.info(f"Transaction not found: {signature}")
        return result

    async def close(self):
        """Cleanup client resources"""
        try:
            if self.client:
                await self.client.close()
            await self.session_manager.stop()
        except Exception as e:
            logger.warning(f"Error closing client: {str(e)}")
        finally:
            self.client = None
