"""Merchant-side verification of payment payloads against requirements."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ....domain.errors import LedgerUnavailableError, PaymentRejectedError
from ....domain.ledger import LedgerAdapter, LedgerRegistry
from ....domain.payments import (
    OnChainTransfer,
    PaymentPayload,
    PaymentRequirement,
    ProofType,
    RejectionReason,
    VerificationResult,
)
from ....middleware.timing import log_timing
from ...shared.confirmation import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    await_confirmation,
)
from ...shared.payment_message import canonical_payment_message
from .payment_validators import (
    validate_amount,
    validate_network,
    validate_not_expired,
    validate_proof_present,
    validate_recipient,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentVerifier:
    """Decides whether a payload pays a requirement.

    Checks run in a fixed order and stop at the first failure. Local checks
    (recipient, amount, network, proof format, expiry) run before the on-chain
    lookup, so invalid payloads are rejected without a network round-trip.
    When the lookup runs, the ledger's sender, recipient and amount replace
    the claimed ones for the final recipient and amount checks.
    """

    def __init__(
        self,
        ledgers: Optional[LedgerRegistry] = None,
        *,
        verify_on_chain: bool = True,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Clock = _utcnow,
    ) -> None:
        self.ledgers = ledgers or LedgerRegistry()
        self.verify_on_chain = verify_on_chain
        self.max_attempts = max_attempts
        self.interval = interval
        self.clock = clock

    @log_timing("verify_payment")
    async def verify(
        self,
        payload: PaymentPayload,
        requirement: PaymentRequirement,
        *,
        deadline: Optional[float] = None,
    ) -> VerificationResult:
        logger.info(
            "Verifying payment from %s to %s: %d on %s (proof %s)",
            payload.sender_address,
            payload.recipient_address,
            payload.amount,
            payload.network,
            payload.proof,
        )
        ledger = self.ledgers.get(requirement.network)

        try:
            # 1-3) Cheap equality checks, in a fixed order
            validate_recipient(payload.recipient_address, requirement.recipient_address)
            validate_amount(payload.amount, requirement.required_amount, requirement.scheme)
            validate_network(payload.network, requirement.network)

            # 4) Proof well-formedness, and the signature for authorizations
            self._check_proof(payload, requirement, ledger)

            # 5) Requirement validity window
            validate_not_expired(requirement.expires_at, self.clock())
        except PaymentRejectedError as e:
            return self._rejected(e)

        if (
            ledger is None
            or not self.verify_on_chain
            or payload.proof_type is not ProofType.TRANSACTION
        ):
            logger.info("Payment verification PASSED")
            return VerificationResult.accept(payload.proof)

        # 6) On-chain confirmation; the ledger's values are authoritative
        return await self._verify_on_chain(payload, requirement, ledger, deadline)

    def _check_proof(
        self,
        payload: PaymentPayload,
        requirement: PaymentRequirement,
        ledger: Optional[LedgerAdapter],
    ) -> None:
        validate_proof_present(payload.proof)
        if ledger is None:
            return
        if not ledger.is_well_formed_proof(payload.proof, payload.proof_type):
            raise PaymentRejectedError(
                RejectionReason.MALFORMED_PROOF, "Invalid signature format"
            )
        if payload.proof_type is ProofType.AUTHORIZATION:
            message = canonical_payment_message(
                requirement, payload.sender_address, payload.amount, payload.timestamp
            )
            if not ledger.verify_message(payload.sender_address, message, payload.proof):
                raise PaymentRejectedError(
                    RejectionReason.MALFORMED_PROOF,
                    "Authorization signature does not match sender",
                )

    async def _verify_on_chain(
        self,
        payload: PaymentPayload,
        requirement: PaymentRequirement,
        ledger: LedgerAdapter,
        deadline: Optional[float],
    ) -> VerificationResult:
        logger.info("Verifying on-chain transaction: %s", payload.proof)
        try:
            status = await await_confirmation(
                ledger.get_status,
                payload.proof,
                self.max_attempts,
                self.interval,
                deadline=deadline,
            )
            if not status.is_confirmed:
                return self._rejected(
                    PaymentRejectedError(
                        RejectionReason.UNCONFIRMED_ON_CHAIN,
                        f"Transaction not confirmed: {status.reason}",
                    )
                )
            transfer = await ledger.get_transfer(payload.proof)
        except LedgerUnavailableError as e:
            return self._rejected(
                PaymentRejectedError(
                    RejectionReason.UNCONFIRMED_ON_CHAIN,
                    f"Could not reach ledger: {e}",
                )
            )

        if transfer is None:
            return self._rejected(
                PaymentRejectedError(
                    RejectionReason.UNCONFIRMED_ON_CHAIN,
                    "Transaction not found or not confirmed",
                )
            )

        confirmed = self._confirmed_fields(transfer)
        if (
            transfer.amount != payload.amount
            or transfer.recipient != payload.recipient_address
        ):
            logger.warning(
                "On-chain transfer %s differs from payload (amount %d vs %d, "
                "recipient %s vs %s); using on-chain values",
                transfer.reference,
                transfer.amount,
                payload.amount,
                transfer.recipient,
                payload.recipient_address,
            )

        try:
            validate_recipient(transfer.recipient, requirement.recipient_address)
            validate_amount(transfer.amount, requirement.required_amount, requirement.scheme)
        except PaymentRejectedError as e:
            return self._rejected(e, **confirmed)

        logger.info("Transaction confirmed on-chain; payment verification PASSED")
        return VerificationResult.accept(payload.proof, **confirmed)

    @staticmethod
    def _confirmed_fields(transfer: OnChainTransfer) -> dict:
        return {
            "confirmed_amount": transfer.amount,
            "confirmed_sender": transfer.sender,
            "confirmed_recipient": transfer.recipient,
        }

    @staticmethod
    def _rejected(error: PaymentRejectedError, **confirmed) -> VerificationResult:
        logger.warning(
            "Payment verification FAILED (%s): %s", error.reason.value, error.detail
        )
        return VerificationResult.reject(error.reason, error.detail, **confirmed)
