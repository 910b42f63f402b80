"""
On-chain resolution of token accounts the transaction itself does not explain.

All still-unknown accounts are looked up in a single batched call. Raw account
data is decoded with the SPL token account layout: mint in bytes [0, 32),
owner in bytes [32, 64).
"""
import logging
from typing import Dict, List, Optional, Sequence

from solders.pubkey import Pubkey

from account_fetcher import AccountFetcher
from models import (
    MIN_TOKEN_ACCOUNT_DATA_LEN,
    TOKEN_PROGRAM_ID,
    UNKNOWN_MINT,
    AccountInfo,
    ContainerKnowledge,
    KnowledgeBase,
    RawTransferEvent,
)

logger = logging.getLogger(__name__)

NOT_A_TOKEN_ACCOUNT = ContainerKnowledge(owner=None, mint=None, attempted=True)


def needs_resolution(knowledge: Optional[ContainerKnowledge]) -> bool:
    if knowledge is None:
        return True
    if knowledge.attempted:
        return False
    return not knowledge.owner or knowledge.mint == UNKNOWN_MINT


def addresses_to_fetch(transfers: Sequence[RawTransferEvent], kb: KnowledgeBase) -> List[str]:
    """Unresolved source/destination accounts, deduplicated, in first-seen order."""
    pending: Dict[str, None] = {}
    for transfer in transfers:
        for address in (transfer.source_container, transfer.dest_container):
            if needs_resolution(kb.get(address)):
                pending[address] = None
    return list(pending)


def parse_token_account(account: Optional[AccountInfo]) -> ContainerKnowledge:
    if (
        account is None
        or account.owner_program != TOKEN_PROGRAM_ID
        or len(account.data) < MIN_TOKEN_ACCOUNT_DATA_LEN
    ):
        return NOT_A_TOKEN_ACCOUNT

    mint = Pubkey.from_bytes(account.data[0:32])
    owner = Pubkey.from_bytes(account.data[32:64])
    return ContainerKnowledge(owner=str(owner), mint=str(mint), attempted=True)


def merge_on_chain(kb: KnowledgeBase, fetched: Dict[str, ContainerKnowledge]) -> KnowledgeBase:
    """Apply lookup results by presence: null fields never erase what is known."""
    merged = dict(kb)
    for address, result in fetched.items():
        update = {"attempted": True}
        if result.owner:
            update["owner"] = result.owner
        if result.mint:
            update["mint"] = result.mint
        current = merged.get(address, ContainerKnowledge())
        merged[address] = current.model_copy(update=update)
    return merged


async def resolve_on_chain(
    transfers: Sequence[RawTransferEvent],
    kb: KnowledgeBase,
    fetcher: AccountFetcher,
) -> KnowledgeBase:
    addresses = addresses_to_fetch(transfers, kb)
    if not addresses:
        logger.debug("All accounts resolved locally, skipping account lookup")
        return kb

    logger.debug(f"Looking up {len(addresses)} accounts on chain")
    try:
        accounts = list(await fetcher.get_multiple_accounts(addresses))
    except Exception as e:
        logger.warning(f"Account lookup failed for {len(addresses)} accounts: {str(e)}")
        accounts = []

    if len(accounts) < len(addresses):
        if accounts:
            logger.warning(f"Account lookup returned {len(accounts)} of {len(addresses)} accounts")
        accounts.extend([None] * (len(addresses) - len(accounts)))

    fetched = {
        address: parse_token_account(account)
        for address, account in zip(addresses, accounts)
    }
    return merge_on_chain(kb, fetched)
