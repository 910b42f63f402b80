from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
MIN_TOKEN_ACCOUNT_DATA_LEN = 64

UNKNOWN_MINT = "UNKNOWN_MINT"
NATIVE_MINT = "SOL"
NATIVE_DECIMALS = 9


class RawTransferEvent(BaseModel):
    """A transfer as the instruction states it, between token accounts."""
    model_config = ConfigDict(frozen=True)

    source_container: str
    dest_container: str
    mint: str = UNKNOWN_MINT
    raw_amount: str = "0"
    decimals: int = 0


class ContainerKnowledge(BaseModel):
    """Everything known so far about one token account."""
    model_config = ConfigDict(frozen=True)

    owner: Optional[str] = None
    mint: Optional[str] = None
    decimals: Optional[int] = None
    # set once the account has been looked up on chain
    attempted: bool = False


KnowledgeBase = Dict[str, ContainerKnowledge]


class AccountInfo(BaseModel):
    owner_program: str
    data: bytes


class ResolvedTransfer(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    from_container: str
    to_container: str
    from_owner: str
    to_owner: str
    amount: str
    mint: str
    decimals: int
    ui_amount: Optional[Decimal] = None

    @field_serializer("ui_amount", when_used="json")
    def _ui_amount_as_number(self, value: Optional[Decimal]) -> Optional[float]:
        return float(value) if value is not None else None
