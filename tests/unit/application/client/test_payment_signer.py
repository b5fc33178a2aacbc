"""Unit tests for PaymentSigner."""

from __future__ import annotations

import pytest

from agentmart.application.shared.payment_message import canonical_payment_message
from agentmart.application.shared.transfer import TransferExecutor
from agentmart.application.client.use_cases.payment_signer import PaymentSigner
from agentmart.domain.errors import PaymentFailedError
from agentmart.domain.payments import ProofType, TransferErrorKind
from tests.fixtures.constants import CLIENT_SOLANA_ADDRESS, MERCHANT_SOLANA_ADDRESS


@pytest.fixture
def signer(solana_ledger) -> PaymentSigner:
    solana_ledger.balances[CLIENT_SOLANA_ADDRESS] = 1_000_000_000
    executor = TransferExecutor(solana_ledger, max_attempts=3, interval=0)
    return PaymentSigner(solana_ledger, CLIENT_SOLANA_ADDRESS, executor)


async def test_transfer_mode_pays_and_returns_reference(
    signer, solana_ledger, make_requirement
) -> None:
    payload = await signer.sign(make_requirement())

    assert payload.proof_type is ProofType.TRANSACTION
    assert payload.proof == solana_ledger.submitted[0].reference
    assert payload.amount == 100_000_000
    assert payload.sender_address == CLIENT_SOLANA_ADDRESS
    assert solana_ledger.balances[MERCHANT_SOLANA_ADDRESS] == 100_000_000


async def test_authorize_mode_signs_without_moving_funds(
    signer, solana_ledger, make_requirement
) -> None:
    requirement = make_requirement()

    payload = await signer.sign(requirement, mode="authorize")

    message = canonical_payment_message(
        requirement, CLIENT_SOLANA_ADDRESS, payload.amount, payload.timestamp
    )
    assert payload.proof_type is ProofType.AUTHORIZATION
    assert solana_ledger.verify_message(CLIENT_SOLANA_ADDRESS, message, payload.proof)
    assert solana_ledger.submitted == []


async def test_failed_transfer_raises(signer, make_requirement) -> None:
    with pytest.raises(PaymentFailedError) as exc_info:
        await signer.sign(make_requirement(required_amount=5_000_000_000))

    assert exc_info.value.outcome.error_kind is TransferErrorKind.INSUFFICIENT_FUNDS


async def test_rejects_requirement_for_other_network(signer, make_requirement) -> None:
    with pytest.raises(ValueError, match="base-sepolia"):
        await signer.sign(make_requirement(network="base-sepolia"))


async def test_rejects_unknown_mode(signer, make_requirement) -> None:
    with pytest.raises(ValueError, match="Unknown signing mode"):
        await signer.sign(make_requirement(), mode="barter")


def test_from_reference_builds_transaction_payload(
    signer, solana_ledger, make_requirement
) -> None:
    requirement = make_requirement()

    payload = signer.from_reference(requirement, "tx_already_landed")

    assert payload.proof == "tx_already_landed"
    assert payload.proof_type is ProofType.TRANSACTION
    assert payload.recipient_address == requirement.recipient_address
    assert payload.amount == requirement.required_amount
    assert solana_ledger.submitted == []
