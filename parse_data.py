import logging
from typing import Any, Dict, List, Optional

from account_fetcher import AccountFetcher
from helius_client import TransactionSource
from instruction_decoder import decode_transfers
from knowledge import build_knowledge_base
from models import ResolvedTransfer
from reconcile import reconcile_transfers
from resolver import resolve_on_chain

logger = logging.getLogger(__name__)


async def parse_transfers(
    parsed_tx: Optional[Dict[str, Any]],
    fetcher: AccountFetcher,
    include_native_transfers: bool = True,
) -> List[ResolvedTransfer]:
    """
    Extract wallet-to-wallet transfers from one jsonParsed transaction.

    Args:
        parsed_tx (dict): The transaction as returned by getTransaction (jsonParsed).
        fetcher (AccountFetcher): Batched account lookup, called at most once.
        include_native_transfers (bool): Also report SOL moves and account funding.

    Returns:
        List[ResolvedTransfer]: One record per decoded transfer, in transaction
        order. Empty when the transaction or its metadata is missing.
    """
    if not parsed_tx or not parsed_tx.get("meta"):
        return []

    transfers = decode_transfers(parsed_tx, include_native_transfers)
    if not transfers:
        return []

    kb = build_knowledge_base(parsed_tx)
    kb = await resolve_on_chain(transfers, kb, fetcher)
    return reconcile_transfers(transfers, kb)


async def parse_transfers_from_signature(
    signature: str,
    include_native_transfers: bool = True,
    *,
    source: TransactionSource,
    fetcher: AccountFetcher,
) -> List[ResolvedTransfer]:
    """Fetch a transaction by signature and extract its transfers"""
    logger.info(f"Parsing transfers for {signature}")
    parsed_tx = await source.get_parsed_transaction(signature)
    transfers = await parse_transfers(parsed_tx, fetcher, include_native_transfers)
    logger.info(f"Found {len(transfers)} transfers in {signature}")
    return transfers
