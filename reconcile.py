import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple

from models import UNKNOWN_MINT, ContainerKnowledge, KnowledgeBase, RawTransferEvent, ResolvedTransfer

logger = logging.getLogger(__name__)

# Instructions cannot tell "0 decimals" from "decimals not stated", so a zero is
# treated as unset and backfilled. Lossy for genuinely zero-decimal tokens.
ZERO_DECIMALS_MEANS_UNSET = True

_EMPTY = ContainerKnowledge()


def ui_amount(raw_amount: str, decimals: int) -> Optional[Decimal]:
    """Scale a raw integer amount by its decimals; None if the amount is not a number."""
    try:
        value = Decimal(raw_amount)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not value.is_finite():
        return None
    return value / (Decimal(10) ** (decimals or 0))


def _backfill_mint(
    mint: str, decimals: int, source: ContainerKnowledge, dest: ContainerKnowledge
) -> Tuple[str, int]:
    if mint != UNKNOWN_MINT:
        return mint, decimals
    # source account first
    for knowledge in (source, dest):
        if knowledge.mint:
            if knowledge.decimals is not None:
                decimals = knowledge.decimals
            return knowledge.mint, decimals
    return mint, decimals


def _backfill_decimals(decimals: int, source: ContainerKnowledge, dest: ContainerKnowledge) -> int:
    if not (ZERO_DECIMALS_MEANS_UNSET and decimals == 0):
        return decimals
    for knowledge in (source, dest):
        if knowledge.decimals is not None and knowledge.decimals > 0:
            return knowledge.decimals
    return decimals


def reconcile_transfer(transfer: RawTransferEvent, kb: KnowledgeBase) -> ResolvedTransfer:
    source = kb.get(transfer.source_container, _EMPTY)
    dest = kb.get(transfer.dest_container, _EMPTY)

    mint, decimals = _backfill_mint(transfer.mint, transfer.decimals, source, dest)
    decimals = _backfill_decimals(decimals, source, dest)

    return ResolvedTransfer(
        from_container=transfer.source_container,
        to_container=transfer.dest_container,
        from_owner=source.owner or transfer.source_container,
        to_owner=dest.owner or transfer.dest_container,
        amount=transfer.raw_amount,
        mint=mint,
        decimals=decimals,
        ui_amount=ui_amount(transfer.raw_amount, decimals),
    )


def reconcile_transfers(transfers: Sequence[RawTransferEvent], kb: KnowledgeBase) -> List[ResolvedTransfer]:
    resolved = [reconcile_transfer(transfer, kb) for transfer in transfers]
    unresolved = sum(1 for t in resolved if t.mint == UNKNOWN_MINT)
    if unresolved:
        logger.debug(f"{unresolved} transfers left with unknown mint")
    return resolved
