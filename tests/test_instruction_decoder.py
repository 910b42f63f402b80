"""
Instruction decoding: recognized transfer shapes, native moves, ordering.
"""

from __future__ import annotations

from instruction_decoder import (
    CreateAccountInstruction,
    NativeTransferInstruction,
    TokenTransferInstruction,
    UnrecognizedInstruction,
    classify_instruction,
    decode_instruction,
    decode_transfers,
)
from models import NATIVE_MINT, UNKNOWN_MINT


def test_transfer_checked_carries_mint_and_decimals(instruction):
    events = decode_instruction(instruction(
        "transferChecked",
        source="C1",
        destination="C2",
        authority="W1",
        mint="MintX",
        tokenAmount={"amount": "1000000", "decimals": 6, "uiAmount": 1.0},
    ))

    assert len(events) == 1
    event = events[0]
    assert event.source_container == "C1"
    assert event.dest_container == "C2"
    assert event.mint == "MintX"
    assert event.raw_amount == "1000000"
    assert event.decimals == 6


def test_plain_transfer_has_unknown_mint_and_zero_decimals(instruction):
    events = decode_instruction(instruction("transfer", source="C1", destination="C2", authority="W1", amount="250"))

    assert [(e.mint, e.raw_amount, e.decimals) for e in events] == [(UNKNOWN_MINT, "250", 0)]


def test_source_falls_back_to_authority(instruction):
    events = decode_instruction(instruction("transferCheckedWithFee", authority="W1", destination="C2", amount=7))

    assert events[0].source_container == "W1"
    assert events[0].raw_amount == "7"


def test_missing_amount_defaults_to_zero(instruction):
    events = decode_instruction(instruction("transfer", source="C1", destination="C2"))
    assert events[0].raw_amount == "0"


def test_system_transfer_is_native_only(instruction):
    ix = instruction("transfer", program="system", source="C1", destination="C2", lamports=5_000_000_000)

    variants = classify_instruction(ix)
    assert [type(v) for v in variants] == [NativeTransferInstruction]

    events = decode_instruction(ix)
    assert len(events) == 1
    assert events[0].mint == NATIVE_MINT
    assert events[0].decimals == 9
    assert events[0].raw_amount == "5000000000"


def test_system_transfer_skipped_without_native_flag(instruction):
    ix = instruction("transfer", program="system", source="C1", destination="C2", lamports=1000)
    assert decode_instruction(ix, include_native_transfers=False) == []


def test_token_and_lamport_transfer_yields_both_events(instruction):
    ix = instruction("transfer", source="C1", destination="C2", amount="10", lamports=2000)

    events = decode_instruction(ix)

    assert [(e.mint, e.raw_amount) for e in events] == [(UNKNOWN_MINT, "10"), (NATIVE_MINT, "2000")]


def test_create_account_funding(instruction):
    ix = instruction(
        "createAccount",
        program="system",
        source="Payer",
        newAccount="NewAcc",
        lamports=2039280,
        owner="TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
        space=165,
    )

    assert isinstance(classify_instruction(ix)[0], CreateAccountInstruction)
    events = decode_instruction(ix)
    assert len(events) == 1
    assert events[0].source_container == "Payer"
    assert events[0].dest_container == "NewAcc"
    assert events[0].mint == NATIVE_MINT
    assert decode_instruction(ix, include_native_transfers=False) == []


def test_unrecognized_records_yield_nothing(instruction):
    records = [
        {"programId": "11111111111111111111111111111111", "data": "3Bxs4h24hBtQy9rw"},
        {"program": "spl-memo", "parsed": "hello"},
        {"parsed": {"type": "closeAccount", "info": {"account": "C1"}}},
        {"parsed": {"type": "transfer"}},
        {"parsed": {"info": {"source": "C1", "destination": "C2"}}},
        instruction("transfer", source="C1", amount="5"),
        None,
    ]
    for record in records:
        assert decode_instruction(record) == []
        assert all(isinstance(v, UnrecognizedInstruction) for v in classify_instruction(record))


def test_zero_lamports_is_not_a_transfer(instruction):
    ix = instruction("transfer", program="system", source="C1", destination="C2", lamports=0)
    assert decode_instruction(ix) == []


def test_token_variant_fields(instruction):
    variant = classify_instruction(instruction("transfer", source="C1", destination="C2", amount="1"))[0]
    assert isinstance(variant, TokenTransferInstruction)
    assert variant.mint == UNKNOWN_MINT


def test_top_level_before_inner_groups_in_order(instruction, tx_builder):
    tx = tx_builder(
        instructions=[instruction("transfer", source="A", destination="B", amount="1")],
        inner=[
            [
                instruction("transfer", source="C", destination="D", amount="2"),
                instruction("transferChecked", source="E", destination="F", mint="M",
                            tokenAmount={"amount": "3", "decimals": 0}),
            ],
            [instruction("transfer", program="system", source="G", destination="H", lamports=4)],
        ],
    )

    events = decode_transfers(tx)

    assert [e.raw_amount for e in events] == ["1", "2", "3", "4"]
    assert [e.source_container for e in events] == ["A", "C", "E", "G"]


def test_missing_sections_decode_to_nothing():
    assert decode_transfers({}) == []
    assert decode_transfers({"transaction": {"message": {}}, "meta": {"innerInstructions": None}}) == []


def test_non_string_fields_yield_nothing(instruction):
    records = [
        instruction("transfer", source={"pubkey": "X"}, destination="C2", amount="1"),
        instruction("transferChecked", source="C1", destination=["C2"], mint="M",
                    tokenAmount={"amount": "1", "decimals": 0}),
        instruction("transferChecked", source="C1", destination="C2", mint=7,
                    tokenAmount={"amount": "1", "decimals": 0}),
        instruction("transfer", source="C1", destination="C2", amount={"value": 1}),
        instruction("transfer", program="system", source=5, destination="C2", lamports=10),
        instruction("createAccount", program="system", source="P", newAccount=["N"], lamports=10),
    ]
    for record in records:
        assert decode_instruction(record) == []


def test_malformed_instruction_does_not_drop_neighbours(instruction, tx_builder):
    tx = tx_builder(
        instructions=[
            instruction("transfer", source={"pubkey": "X"}, destination="C2", amount="1"),
            instruction("transfer", source="C1", destination="C2", amount="2"),
        ],
        inner=[
            [instruction("createAccount", program="system", source="P", newAccount=["N"], lamports=3)],
            "not-a-list",
        ],
    )
    tx["meta"]["innerInstructions"].append("not-a-group")

    events = decode_transfers(tx)

    assert [(e.source_container, e.raw_amount) for e in events] == [("C1", "2")]
