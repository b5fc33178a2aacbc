"""Unit tests for the EVM adapter helpers and message signing."""

from __future__ import annotations

import pytest
from eth_account import Account
from web3 import Web3

from agentmart.domain.errors import TransferRejectedError
from agentmart.domain.payments import ProofType
from agentmart.infrastructure.ledgers.evm_ledger import (
    TRANSFER_EVENT_TOPIC,
    USDC_BASE_SEPOLIA,
    EvmLedger,
    export_account,
    load_account,
    transfer_from_receipt,
)

PAYER = "0x2222222222222222222222222222222222222222"
MERCHANT = "0x1111111111111111111111111111111111111111"


def _topic(address: str) -> bytes:
    return Web3.to_bytes(hexstr="0x" + "00" * 12 + address[2:])


@pytest.fixture
def ledger() -> EvmLedger:
    return EvmLedger(rpc_url="http://127.0.0.1:8545")


def test_account_round_trip() -> None:
    account = Account.create()
    assert load_account(export_account(account)).address == account.address


def test_missing_key_generates_account() -> None:
    assert load_account(None).address != load_account("  ").address


class TestTransferFromReceipt:
    def _receipt(self, token: str = USDC_BASE_SEPOLIA) -> dict:
        return {
            "status": 1,
            "logs": [
                {
                    "address": token,
                    "topics": [
                        Web3.to_bytes(hexstr=TRANSFER_EVENT_TOPIC),
                        _topic(PAYER),
                        _topic(MERCHANT),
                    ],
                    "data": (1_000_000).to_bytes(32, "big"),
                }
            ],
        }

    def test_decodes_transfer_log(self) -> None:
        transfer = transfer_from_receipt("0xref", self._receipt(), USDC_BASE_SEPOLIA)

        assert transfer.sender.lower() == PAYER
        assert transfer.recipient.lower() == MERCHANT
        assert transfer.amount == 1_000_000

    def test_ignores_other_tokens(self) -> None:
        receipt = self._receipt(token="0x" + "33" * 20)

        assert transfer_from_receipt("0xref", receipt, USDC_BASE_SEPOLIA) is None


class TestMessages:
    def test_sign_and_verify(self, ledger) -> None:
        account = Account.create()
        signature = ledger.sign_message(account, b"hello")

        assert ledger.verify_message(account.address, b"hello", signature)
        assert not ledger.verify_message(account.address, b"other", signature)
        assert not ledger.verify_message(Account.create().address, b"hello", signature)

    def test_proof_formats(self, ledger) -> None:
        tx_hash = "0x" + "ab" * 32
        signature = "0x" + "cd" * 65

        assert ledger.is_well_formed_proof(tx_hash, ProofType.TRANSACTION)
        assert not ledger.is_well_formed_proof(tx_hash[:-2], ProofType.TRANSACTION)
        assert ledger.is_well_formed_proof(signature, ProofType.AUTHORIZATION)
        assert not ledger.is_well_formed_proof(tx_hash, ProofType.AUTHORIZATION)

    def test_hash_spellings_share_one_canonical_form(self, ledger) -> None:
        tx_hash = "0x" + "ab" * 32

        for spelling in (tx_hash, "0x" + "AB" * 32, "0x" + "aB" * 32):
            assert ledger.is_well_formed_proof(spelling, ProofType.TRANSACTION)
            assert ledger.canonical_proof(spelling, ProofType.TRANSACTION) == tx_hash


async def test_no_faucet_on_evm(ledger) -> None:
    with pytest.raises(TransferRejectedError):
        await ledger.request_test_funds(PAYER, 1)
