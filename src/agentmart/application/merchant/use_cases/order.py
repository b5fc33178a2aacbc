"""Use cases for the merchant: chat handling, payment settlement, fulfillment."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ....domain.errors import NoPendingPaymentError
from ....domain.merchant import MerchantSession, Order, ProofRegistry
from ....domain.payments import (
    PaymentPayload,
    RejectionReason,
    VerificationResult,
    format_amount,
)
from ..dtos import ChatResponseDTO, SessionResponseDTO, SettlementResponseDTO
from ..session_store import SessionStore
from .intents import parse_intent
from .payment_verifier import PaymentVerifier
from .requirement_builder import DEFAULT_TIMEOUT_SECONDS, PriceTable, build_requirement

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "I sell anything and everything. Tell me what you want to buy, for example "
    "'I want to buy a banana'. I accept USDC by default, or SOL if you ask to "
    "pay with Solana."
)


@dataclass(frozen=True)
class Offering:
    """Where and in what asset the merchant accepts payment on one network."""

    network: str
    recipient_address: str
    asset: str
    asset_name: str
    decimals: int
    extra: dict[str, Any] = field(default_factory=dict)


class MerchantService:
    """Merchant side of a purchase.

    Each session holds at most one pending requirement. A payment is verified
    against it, the requirement is discarded after the verdict, and an accepted
    payment becomes an order. A proof can pay for one order only.
    """

    def __init__(
        self,
        sessions: SessionStore,
        verifier: PaymentVerifier,
        proof_registry: ProofRegistry,
        price_table: PriceTable,
        offerings: list[Offering],
        *,
        default_network: str,
        solana_network: Optional[str] = None,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.sessions = sessions
        self.verifier = verifier
        self.proof_registry = proof_registry
        self.price_table = price_table
        self.offerings = {offering.network: offering for offering in offerings}
        if default_network not in self.offerings:
            raise ValueError(f"No offering configured for default network {default_network}")
        self.default_network = default_network
        self.solana_network = solana_network
        self.timeout_seconds = timeout_seconds

    def create_session(self) -> SessionResponseDTO:
        session = self.sessions.create()
        logger.info("Created new session: %s", session.id)
        return SessionResponseDTO(session_id=str(session.id))

    def close_session(self, session_id: str) -> None:
        self.sessions.close(session_id)
        logger.info("Closed session: %s", session_id)

    def handle_message(self, session_id: str, text: str) -> ChatResponseDTO:
        """Answer a shopper message, issuing a requirement for purchase intents.

        Raises:
            SessionNotFoundError: Unknown session.
            InvalidProductError: Purchase intent without a product name.
        """
        session = self.sessions.get(session_id)
        intent = parse_intent(text)

        if intent.kind == "buy":
            network = self._network_for(intent.wants_solana)
            return self._request_payment(session, intent.product or "", network)

        if intent.kind == "order_status":
            return ChatResponseDTO(kind="text", text=self._order_status(session))

        return ChatResponseDTO(kind="text", text=HELP_TEXT)

    async def settle_payment(
        self, session_id: str, payload: PaymentPayload
    ) -> SettlementResponseDTO:
        """Verify a payment for the session's pending requirement and fulfill it.

        Raises:
            SessionNotFoundError: Unknown session.
            NoPendingPaymentError: Nothing is awaiting payment in this session.
        """
        session = self.sessions.get(session_id)
        requirement = session.pending_requirement
        if requirement is None:
            raise NoPendingPaymentError("No pending payment for this session")

        payload = self._canonical(payload)
        result = await self.verifier.verify(payload, requirement)
        session.discard_requirement()

        if not result.accepted:
            return SettlementResponseDTO.from_result(result)

        if not await self.proof_registry.claim(
            payload.network, payload.proof, str(session.id)
        ):
            logger.warning("Payment proof %s was already used", payload.proof)
            duplicate = VerificationResult.reject(
                RejectionReason.DUPLICATE_PAYLOAD,
                "This payment has already been used for another order",
            )
            return SettlementResponseDTO.from_result(duplicate)

        order = Order(
            product=requirement.product_name,
            amount=(
                result.confirmed_amount
                if result.confirmed_amount is not None
                else payload.amount
            ),
            asset=requirement.asset,
            network=requirement.network,
            payer=result.confirmed_sender or payload.sender_address,
            reference=payload.proof,
        )
        session.orders.append(order)
        logger.info("Order %s confirmed for %s", order.id, order.product)
        return SettlementResponseDTO.from_result(result, order)

    def _canonical(self, payload: PaymentPayload) -> PaymentPayload:
        """Rewrite the proof to the single spelling its ledger uses."""
        ledger = self.verifier.ledgers.get(payload.network)
        if ledger is None:
            return payload
        proof = ledger.canonical_proof(payload.proof, payload.proof_type)
        if proof == payload.proof:
            return payload
        logger.info("Normalized payment proof %s to %s", payload.proof, proof)
        return payload.model_copy(update={"proof": proof})

    def _network_for(self, wants_solana: bool) -> str:
        if wants_solana and self.solana_network in self.offerings:
            return self.solana_network  # type: ignore[return-value]
        return self.default_network

    def _request_payment(
        self, session: MerchantSession, product: str, network: str
    ) -> ChatResponseDTO:
        offering = self.offerings[network]
        requirement = build_requirement(
            product,
            self.price_table,
            offering.recipient_address,
            network,
            asset=offering.asset,
            asset_name=offering.asset_name,
            timeout_seconds=self.timeout_seconds,
            extra=offering.extra,
        )
        session.issue(requirement)

        price = format_amount(requirement.required_amount, offering.decimals)
        logger.info(
            "Payment required for %s: %s %s (%d atomic units) on %s",
            requirement.product_name,
            price,
            offering.asset_name,
            requirement.required_amount,
            network,
        )
        return ChatResponseDTO(
            kind="payment_required",
            text=(
                f"Payment of {price} {offering.asset_name} required for "
                f"{requirement.product_name}"
            ),
            requirement=requirement,
        )

    @staticmethod
    def _order_status(session: MerchantSession) -> str:
        order = session.last_order
        if order is None:
            if session.pending_requirement is not None:
                return "Your order is awaiting payment."
            return "You have no orders yet."
        return order.message
