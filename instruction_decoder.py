"""
Decoding of jsonParsed instructions into raw transfer events.

Each instruction record is classified into a closed set of variants. Only the
transfer-shaped families are recognized; anything else is an
UnrecognizedInstruction and contributes no events.
"""
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel

from models import NATIVE_DECIMALS, NATIVE_MINT, UNKNOWN_MINT, RawTransferEvent

logger = logging.getLogger(__name__)

TOKEN_TRANSFER_TYPES = {"transfer", "transferChecked", "transferCheckedWithFee"}


class TokenTransferInstruction(BaseModel):
    source: str
    destination: str
    amount: str
    mint: str
    decimals: int

    def to_event(self) -> RawTransferEvent:
        return RawTransferEvent(
            source_container=self.source,
            dest_container=self.destination,
            mint=self.mint,
            raw_amount=self.amount,
            decimals=self.decimals,
        )


class NativeTransferInstruction(BaseModel):
    source: str
    destination: str
    lamports: int

    def to_event(self) -> RawTransferEvent:
        return RawTransferEvent(
            source_container=self.source,
            dest_container=self.destination,
            mint=NATIVE_MINT,
            raw_amount=str(self.lamports),
            decimals=NATIVE_DECIMALS,
        )


class CreateAccountInstruction(BaseModel):
    source: str
    new_account: str
    lamports: int

    def to_event(self) -> RawTransferEvent:
        return RawTransferEvent(
            source_container=self.source,
            dest_container=self.new_account,
            mint=NATIVE_MINT,
            raw_amount=str(self.lamports),
            decimals=NATIVE_DECIMALS,
        )


class UnrecognizedInstruction(BaseModel):
    type: Optional[str] = None


InstructionVariant = Union[
    TokenTransferInstruction,
    NativeTransferInstruction,
    CreateAccountInstruction,
    UnrecognizedInstruction,
]


def parsed_payload(ix: Any) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Return (type, info) of a jsonParsed instruction, or None if it has none."""
    if not isinstance(ix, dict):
        return None
    parsed = ix.get("parsed")
    # unparsed programs carry raw data, memo carries a plain string
    if not isinstance(parsed, dict):
        return None
    ix_type = parsed.get("type")
    info = parsed.get("info")
    if not ix_type or not isinstance(ix_type, str) or not isinstance(info, dict):
        return None
    return ix_type, info


def address(value: Any) -> Optional[str]:
    """The value if it is a non-empty string, else None."""
    if isinstance(value, str) and value:
        return value
    return None


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _token_transfer(ix_type: str, info: Dict[str, Any]) -> Optional[TokenTransferInstruction]:
    token_amount = info.get("tokenAmount")
    if not isinstance(token_amount, dict):
        token_amount = {}

    has_token_amount = info.get("amount") is not None or bool(token_amount)
    if ix_type == "transfer" and "lamports" in info and not has_token_amount:
        # system program move, handled as a native transfer
        return None

    source = address(info.get("source") or info.get("authority"))
    destination = address(info.get("destination"))
    if not source or not destination:
        return None

    mint = info.get("mint") or UNKNOWN_MINT
    amount = info.get("amount") or token_amount.get("amount") or "0"
    if not isinstance(mint, str) or isinstance(amount, bool) or not isinstance(amount, (str, int)):
        return None

    decimals = token_amount.get("decimals")
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        decimals = 0

    return TokenTransferInstruction(
        source=source,
        destination=destination,
        amount=str(amount),
        mint=mint,
        decimals=decimals,
    )


def classify_instruction(ix: Any) -> List[InstructionVariant]:
    """Classify one instruction record. May return two variants for one record."""
    payload = parsed_payload(ix)
    if payload is None:
        return [UnrecognizedInstruction()]
    ix_type, info = payload

    variants: List[InstructionVariant] = []
    if ix_type in TOKEN_TRANSFER_TYPES:
        token = _token_transfer(ix_type, info)
        if token is not None:
            variants.append(token)

    lamports = _positive_int(info.get("lamports"))
    source = address(info.get("source"))
    if ix_type == "transfer" and lamports and source and address(info.get("destination")):
        variants.append(NativeTransferInstruction(
            source=source,
            destination=info["destination"],
            lamports=lamports,
        ))
    elif ix_type == "createAccount" and lamports and source and address(info.get("newAccount")):
        variants.append(CreateAccountInstruction(
            source=source,
            new_account=info["newAccount"],
            lamports=lamports,
        ))

    return variants or [UnrecognizedInstruction(type=ix_type)]


def decode_instruction(ix: Any, include_native_transfers: bool = True) -> List[RawTransferEvent]:
    events = []
    for variant in classify_instruction(ix):
        if isinstance(variant, TokenTransferInstruction):
            events.append(variant.to_event())
        elif isinstance(variant, (NativeTransferInstruction, CreateAccountInstruction)):
            if include_native_transfers:
                events.append(variant.to_event())
    return events


def iter_instructions(parsed_tx: Dict[str, Any]) -> Iterator[Any]:
    """Top-level instructions first, then each inner instruction group in order."""
    message = (parsed_tx.get("transaction") or {}).get("message") or {}
    meta = parsed_tx.get("meta") or {}

    instructions = message.get("instructions")
    if isinstance(instructions, list):
        yield from instructions

    groups = meta.get("innerInstructions")
    for group in groups if isinstance(groups, list) else []:
        inner = group.get("instructions") if isinstance(group, dict) else None
        if isinstance(inner, list):
            yield from inner


def decode_transfers(parsed_tx: Dict[str, Any], include_native_transfers: bool = True) -> List[RawTransferEvent]:
    transfers: List[RawTransferEvent] = []
    for ix in iter_instructions(parsed_tx):
        transfers.extend(decode_instruction(ix, include_native_transfers))
    logger.debug(f"Decoded {len(transfers)} raw transfers")
    return transfers
