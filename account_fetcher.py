import logging
from typing import List, Optional, Protocol, Sequence

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solders.pubkey import Pubkey

from models import AccountInfo

logger = logging.getLogger(__name__)

# getMultipleAccounts limit on public RPC nodes; larger batches are rejected whole
MAX_MULTIPLE_ACCOUNTS = 100


class AccountFetcher(Protocol):
    async def get_multiple_accounts(self, addresses: Sequence[str]) -> List[Optional[AccountInfo]]:
        """Return one slot per address, in order; None when the account does not exist."""
        ...


class SolanaAccountFetcher:
    """Batched account lookup over the solana-py async RPC client."""

    def __init__(self, rpc_url: str, commitment: str = "confirmed", timeout: float = 10):
        if not rpc_url:
            raise ValueError("rpc_url must be provided")
        self.rpc_url = rpc_url
        self.commitment = Commitment(commitment)
        self.timeout = timeout
        self.client: Optional[AsyncClient] = None

    async def __aenter__(self):
        self.client = AsyncClient(self.rpc_url, commitment=self.commitment, timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def get_multiple_accounts(self, addresses: Sequence[str]) -> List[Optional[AccountInfo]]:
        if not self.client:
            raise RuntimeError("Client not initialized")

        results: List[Optional[AccountInfo]] = [None] * len(addresses)
        positions = []
        pubkeys = []
        for i, address in enumerate(addresses):
            try:
                pubkeys.append(Pubkey.from_string(address))
                positions.append(i)
            except ValueError:
                logger.debug(f"Skipping invalid address: {address}")

        if not pubkeys:
            return results

        if len(pubkeys) > MAX_MULTIPLE_ACCOUNTS:
            logger.warning(
                f"Requesting {len(pubkeys)} accounts in one call, "
                f"above the usual limit of {MAX_MULTIPLE_ACCOUNTS}"
            )

        response = await self.client.get_multiple_accounts(pubkeys, encoding="base64")
        for i, account in zip(positions, response.value):
            if account is None:
                continue
            results[i] = AccountInfo(owner_program=str(account.owner), data=bytes(account.data))
        return results

    async def close(self):
        try:
            if self.client:
                await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing RPC client: {str(e)}")
        finally:
            self.client = None
