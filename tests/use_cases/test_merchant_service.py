"""Use case tests for MerchantService: chat, settlement and fulfillment."""

from __future__ import annotations

import pytest

from agentmart.application.merchant.session_store import SessionStore
from agentmart.application.merchant.use_cases.order import HELP_TEXT, MerchantService
from agentmart.application.merchant.use_cases.requirement_builder import PriceTable
from agentmart.domain.errors import (
    InvalidProductError,
    NoPendingPaymentError,
    SessionNotFoundError,
)
from agentmart.domain.payments import PaymentPayload, RejectionReason
from agentmart.infrastructure.merchant.proof_registry_impl import ProofRegistryImpl
from tests.fixtures import CONFIRMED, PENDING
from tests.fixtures.constants import (
    CLIENT_EVM_ADDRESS,
    CLIENT_SOLANA_ADDRESS,
    MERCHANT_EVM_ADDRESS,
    MERCHANT_SOLANA_ADDRESS,
)


def _pay_on_chain(ledger, requirement, amount=None) -> PaymentPayload:
    """Record a transfer for ``requirement`` that confirms on the second poll."""
    amount = requirement.required_amount if amount is None else amount
    reference = ledger._new_reference()
    ledger.record_transfer(
        reference, CLIENT_SOLANA_ADDRESS, requirement.recipient_address, amount
    )
    ledger.script(reference, PENDING, CONFIRMED)
    return PaymentPayload(
        sender_address=CLIENT_SOLANA_ADDRESS,
        recipient_address=requirement.recipient_address,
        amount=amount,
        proof=reference,
        network=requirement.network,
    )


@pytest.fixture
def session_id(merchant_service: MerchantService) -> str:
    return merchant_service.create_session().session_id


class TestChat:
    def test_buy_defaults_to_usdc(self, merchant_service, session_id) -> None:
        reply = merchant_service.handle_message(session_id, "I want to buy a banana")

        assert reply.kind == "payment_required"
        assert reply.text == "Payment of 1.000000 USDC required for banana"
        assert reply.requirement.network == "base-sepolia"
        assert reply.requirement.recipient_address == MERCHANT_EVM_ADDRESS
        assert reply.requirement.required_amount == 1_000_000

    def test_buy_with_solana(self, merchant_service, session_id) -> None:
        reply = merchant_service.handle_message(
            session_id, "I want to buy a banana with Solana"
        )

        requirement = reply.requirement
        assert reply.text == "Payment of 0.100000 SOL required for banana"
        assert requirement.network == "solana-devnet"
        assert requirement.recipient_address == MERCHANT_SOLANA_ADDRESS
        assert requirement.required_amount == 100_000_000
        assert requirement.extra["blockchain"] == "solana"
        assert requirement.product_name == "banana"

    def test_new_purchase_replaces_pending_requirement(
        self, merchant_service, session_id
    ) -> None:
        merchant_service.handle_message(session_id, "buy a banana")
        merchant_service.handle_message(session_id, "buy an apple with sol")

        pending = merchant_service.sessions.get(session_id).pending_requirement
        assert pending.product_name == "apple"
        assert pending.network == "solana-devnet"

    def test_buy_without_product(self, merchant_service, session_id) -> None:
        with pytest.raises(InvalidProductError):
            merchant_service.handle_message(session_id, "I want to buy")

    def test_help(self, merchant_service, session_id) -> None:
        reply = merchant_service.handle_message(session_id, "hello there")

        assert reply.kind == "text"
        assert reply.text == HELP_TEXT

    def test_order_status_before_and_while_pending(
        self, merchant_service, session_id
    ) -> None:
        assert (
            merchant_service.handle_message(session_id, "order status").text
            == "You have no orders yet."
        )
        merchant_service.handle_message(session_id, "buy a banana")
        assert (
            merchant_service.handle_message(session_id, "order status").text
            == "Your order is awaiting payment."
        )

    def test_unknown_session(self, merchant_service) -> None:
        with pytest.raises(SessionNotFoundError):
            merchant_service.handle_message("missing", "buy a banana")

    def test_close_session(self, merchant_service, session_id) -> None:
        merchant_service.close_session(session_id)

        with pytest.raises(SessionNotFoundError):
            merchant_service.close_session(session_id)


class TestSettlement:
    async def test_accepted_payment_creates_order(
        self, merchant_service, session_id, solana_ledger
    ) -> None:
        requirement = merchant_service.handle_message(
            session_id, "buy a banana with solana"
        ).requirement
        payload = _pay_on_chain(solana_ledger, requirement)

        verdict = await merchant_service.settle_payment(session_id, payload)

        assert verdict.accepted is True
        assert verdict.order.product == "banana"
        assert verdict.order.amount == 100_000_000
        assert verdict.order.payer == CLIENT_SOLANA_ADDRESS
        assert verdict.order.reference == payload.proof
        assert verdict.order.message == (
            "Your order has been confirmed and is being prepared for shipment!"
        )
        session = merchant_service.sessions.get(session_id)
        assert session.pending_requirement is None
        assert (
            merchant_service.handle_message(session_id, "order status").text
            == verdict.order.message
        )

    async def test_rejection_discards_requirement(
        self, merchant_service, session_id, solana_ledger
    ) -> None:
        requirement = merchant_service.handle_message(
            session_id, "buy a banana with solana"
        ).requirement
        payload = _pay_on_chain(solana_ledger, requirement, amount=50_000_000)

        verdict = await merchant_service.settle_payment(session_id, payload)

        assert verdict.accepted is False
        assert verdict.rejection_reason is RejectionReason.AMOUNT_MISMATCH
        assert verdict.order is None
        with pytest.raises(NoPendingPaymentError):
            await merchant_service.settle_payment(session_id, payload)

    async def test_no_pending_payment(self, merchant_service, session_id, make_payload) -> None:
        with pytest.raises(NoPendingPaymentError):
            await merchant_service.settle_payment(session_id, make_payload())

    async def test_proof_cannot_pay_twice(
        self, merchant_service, solana_ledger
    ) -> None:
        first = merchant_service.create_session().session_id
        second = merchant_service.create_session().session_id
        requirement = merchant_service.handle_message(
            first, "buy a banana with solana"
        ).requirement
        payload = _pay_on_chain(solana_ledger, requirement)
        assert (await merchant_service.settle_payment(first, payload)).accepted

        merchant_service.handle_message(second, "buy a banana with solana")
        verdict = await merchant_service.settle_payment(second, payload)

        assert verdict.accepted is False
        assert verdict.rejection_reason is RejectionReason.DUPLICATE_PAYLOAD
        assert merchant_service.sessions.get(second).orders == []

    async def test_respelled_hash_cannot_pay_twice(
        self, merchant_service, evm_ledger
    ) -> None:
        first = merchant_service.create_session().session_id
        second = merchant_service.create_session().session_id
        requirement = merchant_service.handle_message(first, "buy a banana").requirement
        reference = "tx_" + "ab" * 32
        evm_ledger.record_transfer(
            reference,
            CLIENT_EVM_ADDRESS,
            requirement.recipient_address,
            requirement.required_amount,
        )
        evm_ledger.script(reference, CONFIRMED)
        payload = PaymentPayload(
            sender_address=CLIENT_EVM_ADDRESS,
            recipient_address=requirement.recipient_address,
            amount=requirement.required_amount,
            proof="tx_" + "AB" * 32,
            network=requirement.network,
        )

        verdict = await merchant_service.settle_payment(first, payload)
        assert verdict.accepted is True
        assert verdict.order.reference == reference

        for spelling in (reference, "tx_" + "aB" * 32):
            respelled = payload.model_copy(update={"proof": spelling})
            merchant_service.handle_message(second, "buy a banana")
            verdict = await merchant_service.settle_payment(second, respelled)

            assert verdict.accepted is False
            assert verdict.rejection_reason is RejectionReason.DUPLICATE_PAYLOAD
        assert merchant_service.sessions.get(second).orders == []

    async def test_unconfirmed_transaction(
        self, merchant_service, session_id, solana_ledger
    ) -> None:
        requirement = merchant_service.handle_message(
            session_id, "buy a banana with solana"
        ).requirement
        payload = _pay_on_chain(solana_ledger, requirement)
        solana_ledger.script(payload.proof, PENDING)

        verdict = await merchant_service.settle_payment(session_id, payload)

        assert verdict.rejection_reason is RejectionReason.UNCONFIRMED_ON_CHAIN
        assert solana_ledger.status_calls[payload.proof] == 3


def test_default_network_needs_an_offering(store, verifier, offerings) -> None:
    with pytest.raises(ValueError, match="ethereum"):
        MerchantService(
            SessionStore(),
            verifier,
            ProofRegistryImpl(store),
            PriceTable(),
            offerings,
            default_network="ethereum-mainnet",
        )
