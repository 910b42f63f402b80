"""
Pytest fixtures: canned account lookups and transaction builders, no network.
"""

from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from models import TOKEN_PROGRAM_ID, AccountInfo


class FakeAccountFetcher:
    """Returns canned accounts by address and records every batched call."""

    def __init__(self, accounts=None, error=None):
        self.accounts = accounts or {}
        self.error = error
        self.calls = []

    async def get_multiple_accounts(self, addresses):
        self.calls.append(list(addresses))
        if self.error:
            raise self.error
        return [self.accounts.get(address) for address in addresses]


def make_token_account(mint: str, owner: str, program: str = TOKEN_PROGRAM_ID, extra: int = 101) -> AccountInfo:
    data = bytes(Pubkey.from_string(mint)) + bytes(Pubkey.from_string(owner)) + bytes(extra)
    return AccountInfo(owner_program=program, data=data)


def make_tx(instructions=None, inner=None, account_keys=None, pre=None, post=None):
    return {
        "transaction": {
            "message": {
                "accountKeys": account_keys or [],
                "instructions": instructions or [],
            },
        },
        "meta": {
            "innerInstructions": [{"index": i, "instructions": group} for i, group in enumerate(inner or [])],
            "preTokenBalances": pre or [],
            "postTokenBalances": post or [],
        },
    }


def ix(ix_type, program="spl-token", **info):
    return {"program": program, "parsed": {"type": ix_type, "info": info}}


@pytest.fixture
def fetcher_factory():
    return FakeAccountFetcher


@pytest.fixture
def token_account():
    return make_token_account


@pytest.fixture
def tx_builder():
    return make_tx


@pytest.fixture
def instruction():
    return ix
