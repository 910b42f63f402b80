"""
Builds the pre-network knowledge base from data already in the transaction.

Two cheap sources are read: account creation/initialization instructions
(owner hints) and the pre/post token balance snapshots (mint, decimals,
owner). Every function returns a new mapping; inputs are never mutated.
"""
import logging
from typing import Any, Dict, List, Optional

from instruction_decoder import address, iter_instructions, parsed_payload
from models import ContainerKnowledge, KnowledgeBase

logger = logging.getLogger(__name__)


def extract_owner_hints(parsed_tx: Dict[str, Any]) -> Dict[str, str]:
    """Map token account -> owner from initializeAccount*/create* instructions.

    Later instructions override earlier ones for the same account.
    """
    hints: Dict[str, str] = {}
    for ix in iter_instructions(parsed_tx):
        payload = parsed_payload(ix)
        if payload is None:
            continue
        ix_type, info = payload

        if ix_type.startswith("initializeAccount"):
            account = address(info.get("account"))
            owner = address(info.get("owner"))
            if account and owner:
                hints[account] = owner
        elif ix_type.startswith("create"):
            account = address(info.get("account") or info.get("newAccount"))
            owner = address(info.get("owner") or info.get("wallet"))
            if account and owner:
                hints[account] = owner
    return hints


def _account_key(keys: List[Any], index: Any) -> Optional[str]:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(keys):
        return None
    key = keys[index]
    if isinstance(key, dict):
        return address(key.get("pubkey"))
    return address(key)


def extract_balance_knowledge(parsed_tx: Dict[str, Any]) -> KnowledgeBase:
    """Collect mint/owner/decimals per token account from the balance snapshots.

    Post balances are applied after pre balances, field by field.
    """
    message = (parsed_tx.get("transaction") or {}).get("message") or {}
    meta = parsed_tx.get("meta") or {}
    keys = message.get("accountKeys")
    if not isinstance(keys, list):
        keys = []

    kb: KnowledgeBase = {}
    for balances in (meta.get("preTokenBalances"), meta.get("postTokenBalances")):
        for balance in balances or []:
            if not isinstance(balance, dict):
                continue
            account = _account_key(keys, balance.get("accountIndex"))
            if not account:
                continue

            update = {}
            if address(balance.get("mint")):
                update["mint"] = balance["mint"]
            if address(balance.get("owner")):
                update["owner"] = balance["owner"]
            ui_token_amount = balance.get("uiTokenAmount")
            decimals = ui_token_amount.get("decimals") if isinstance(ui_token_amount, dict) else None
            # a malformed field is dropped, the rest of the entry still applies
            if isinstance(decimals, int) and not isinstance(decimals, bool) and decimals >= 0:
                update["decimals"] = decimals

            current = kb.get(account, ContainerKnowledge())
            kb[account] = current.model_copy(update=update)
    return kb


def merge_owner_hints(kb: KnowledgeBase, hints: Dict[str, str]) -> KnowledgeBase:
    """Overlay instruction hints on the snapshot knowledge; hints win on owner."""
    merged = dict(kb)
    for account, owner in hints.items():
        current = merged.get(account, ContainerKnowledge())
        merged[account] = current.model_copy(update={"owner": owner})
    return merged


def build_knowledge_base(parsed_tx: Dict[str, Any]) -> KnowledgeBase:
    hints = extract_owner_hints(parsed_tx)
    balances = extract_balance_knowledge(parsed_tx)
    kb = merge_owner_hints(balances, hints)
    logger.debug(
        f"Knowledge base: {len(kb)} accounts "
        f"({len(hints)} from instructions, {len(balances)} from balances)"
    )
    return kb
