"""Turns a payment requirement into a signed payload on the payer side."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from ....domain.errors import PaymentFailedError
from ....domain.ledger import LedgerAdapter
from ....domain.payments import PaymentPayload, PaymentRequirement, ProofType
from ...shared.payment_message import canonical_payment_message
from ...shared.transfer import TransferExecutor

logger = logging.getLogger(__name__)

SigningMode = Literal["transfer", "authorize"]


class PaymentSigner:
    """Produces ``PaymentPayload``s for requirements on one ledger.

    ``transfer`` moves the funds and uses the transaction reference as proof.
    ``authorize`` signs the canonical payment message and moves nothing.
    """

    def __init__(
        self,
        ledger: LedgerAdapter,
        credential: Any,
        executor: Optional[TransferExecutor] = None,
    ) -> None:
        self.ledger = ledger
        self.credential = credential
        self.executor = executor or TransferExecutor(ledger)

    @property
    def address(self) -> str:
        return self.ledger.address_of(self.credential)

    async def sign(
        self,
        requirement: PaymentRequirement,
        *,
        mode: SigningMode = "transfer",
        deadline: Optional[float] = None,
    ) -> PaymentPayload:
        """Pay ``requirement`` and return the payload to hand to the merchant.

        Raises:
            ValueError: If the requirement is for another network, or the mode
                is unknown.
            PaymentFailedError: If the transfer did not succeed.
        """
        if requirement.network != self.ledger.network:
            raise ValueError(
                f"Requirement is for network {requirement.network}, "
                f"signer serves {self.ledger.network}"
            )

        sender = self.address
        amount = requirement.required_amount
        timestamp = datetime.now(timezone.utc)

        if mode == "transfer":
            outcome = await self.executor.transfer(
                self.credential,
                requirement.recipient_address,
                amount,
                deadline=deadline,
            )
            if not outcome.success or outcome.reference is None:
                logger.warning(
                    "Payment transfer failed (%s): %s",
                    outcome.error_kind,
                    outcome.detail,
                )
                raise PaymentFailedError(outcome)
            return self.from_reference(requirement, outcome.reference)
        if mode == "authorize":
            message = canonical_payment_message(requirement, sender, amount, timestamp)
            return self._payload(
                requirement,
                self.ledger.sign_message(self.credential, message),
                ProofType.AUTHORIZATION,
                timestamp,
            )
        raise ValueError(f"Unknown signing mode: {mode}")

    def from_reference(
        self, requirement: PaymentRequirement, reference: str
    ) -> PaymentPayload:
        """Payload for a transfer to ``requirement`` that has already confirmed."""
        return self._payload(
            requirement, reference, ProofType.TRANSACTION, datetime.now(timezone.utc)
        )

    def _payload(
        self,
        requirement: PaymentRequirement,
        proof: str,
        proof_type: ProofType,
        timestamp: datetime,
    ) -> PaymentPayload:
        return PaymentPayload(
            sender_address=self.address,
            recipient_address=requirement.recipient_address,
            amount=requirement.required_amount,
            proof=proof,
            proof_type=proof_type,
            network=requirement.network,
            timestamp=timestamp,
        )
