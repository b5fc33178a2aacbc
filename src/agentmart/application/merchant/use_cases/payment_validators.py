"""Pure validation functions for merchant-side payment verification.

These functions contain the business rules that decide whether a payment
payload satisfies a requirement. They have no I/O and can be tested in
isolation. Each raises ``PaymentRejectedError`` carrying the rejection reason.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ....domain.errors import PaymentRejectedError
from ....domain.payments import PaymentScheme, RejectionReason


def validate_recipient(paid_to: Optional[str], required_to: str) -> None:
    """Validate that funds went to the merchant address.

    Args:
        paid_to: Recipient claimed by the payload (or read from the ledger)
        required_to: Recipient named by the requirement

    Raises:
        PaymentRejectedError: WRONG_RECIPIENT if the addresses differ.
    """
    if paid_to != required_to:
        raise PaymentRejectedError(
            RejectionReason.WRONG_RECIPIENT,
            f"Payment sent to wrong address. Expected: {required_to}, Got: {paid_to}",
        )


def validate_amount(amount: int, required_amount: int, scheme: PaymentScheme) -> None:
    """Validate the paid amount under the requirement's scheme.

    Args:
        amount: Paid amount in atomic units
        required_amount: Required (EXACT) or maximum (UP_TO) amount
        scheme: Payment scheme of the requirement

    Raises:
        PaymentRejectedError: AMOUNT_MISMATCH for EXACT when amounts differ,
            AMOUNT_EXCEEDS_MAX for UP_TO when the amount is above the maximum.
    """
    if scheme is PaymentScheme.EXACT and amount != required_amount:
        raise PaymentRejectedError(
            RejectionReason.AMOUNT_MISMATCH,
            f"Incorrect payment amount. Expected: {required_amount}, Got: {amount}",
        )
    if scheme is PaymentScheme.UP_TO and amount > required_amount:
        raise PaymentRejectedError(
            RejectionReason.AMOUNT_EXCEEDS_MAX,
            f"Payment amount exceeds maximum. Max: {required_amount}, Got: {amount}",
        )


def validate_network(network: str, required_network: str) -> None:
    """Raises PaymentRejectedError: NETWORK_MISMATCH if networks differ."""
    if network != required_network:
        raise PaymentRejectedError(
            RejectionReason.NETWORK_MISMATCH,
            f"Wrong network. Expected: {required_network}, Got: {network}",
        )


def validate_proof_present(proof: Optional[str]) -> None:
    """Raises PaymentRejectedError: MALFORMED_PROOF for an empty proof."""
    if not proof or not proof.strip():
        raise PaymentRejectedError(
            RejectionReason.MALFORMED_PROOF, "Invalid signature format"
        )


def validate_not_expired(expires_at: datetime, now: datetime) -> None:
    """Raises PaymentRejectedError: REQUIREMENT_EXPIRED once the window closed."""
    if now >= expires_at:
        raise PaymentRejectedError(
            RejectionReason.REQUIREMENT_EXPIRED,
            f"Payment requirement expired at {expires_at.isoformat()}",
        )
