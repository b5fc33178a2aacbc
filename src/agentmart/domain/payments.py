"""Payment domain entities shared by the merchant (payee) and client (payer)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class PaymentScheme(str, Enum):
    """How the paid amount relates to the required amount."""

    EXACT = "exact"
    UP_TO = "up-to"


class ProofType(str, Enum):
    """What the proof string of a payload is."""

    TRANSACTION = "transaction"
    AUTHORIZATION = "authorization"


class RejectionReason(str, Enum):
    WRONG_RECIPIENT = "WRONG_RECIPIENT"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    AMOUNT_EXCEEDS_MAX = "AMOUNT_EXCEEDS_MAX"
    NETWORK_MISMATCH = "NETWORK_MISMATCH"
    MALFORMED_PROOF = "MALFORMED_PROOF"
    REQUIREMENT_EXPIRED = "REQUIREMENT_EXPIRED"
    UNCONFIRMED_ON_CHAIN = "UNCONFIRMED_ON_CHAIN"
    DUPLICATE_PAYLOAD = "DUPLICATE_PAYLOAD"


class PaymentRequirement(BaseModel):
    """What the merchant wants to be paid for a single purchase attempt.

    Immutable once issued. ``required_amount`` is in atomic units of ``asset``.
    """

    model_config = ConfigDict(frozen=True)

    scheme: PaymentScheme = PaymentScheme.EXACT
    network: str = Field(..., min_length=1)
    recipient_address: str = Field(..., min_length=1)
    required_amount: int = Field(..., ge=0)
    asset: str = Field(..., min_length=1)
    description: str = ""
    resource: Optional[str] = None
    mime_type: str = "application/json"
    timeout_seconds: int = Field(default=1200, gt=0)
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_serializer("issued_at")
    def serialize_issued_at(self, value: datetime) -> str:
        return value.isoformat()

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.timeout_seconds)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True once the validity window has elapsed."""
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    @property
    def product_name(self) -> str:
        product = self.extra.get("product") or {}
        return product.get("name") or "product"


class PaymentPayload(BaseModel):
    """A payer's claim that a requirement has been paid (single-use)."""

    model_config = ConfigDict(frozen=True)

    sender_address: str
    recipient_address: str
    amount: int = Field(..., ge=0)
    proof: str
    proof_type: ProofType = ProofType.TRANSACTION
    network: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()


class VerificationResult(BaseModel):
    """Verdict of the merchant on a payload. Never persisted."""

    accepted: bool
    rejection_reason: Optional[RejectionReason] = None
    detail: Optional[str] = None
    proof: Optional[str] = None
    confirmed_amount: Optional[int] = None
    confirmed_sender: Optional[str] = None
    confirmed_recipient: Optional[str] = None

    @classmethod
    def accept(cls, proof: str, **confirmed: Any) -> "VerificationResult":
        return cls(accepted=True, proof=proof, **confirmed)

    @classmethod
    def reject(
        cls, reason: RejectionReason, detail: str, **confirmed: Any
    ) -> "VerificationResult":
        return cls(accepted=False, rejection_reason=reason, detail=detail, **confirmed)


class TxState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TxStatus(BaseModel):
    """One observation of a transaction's status on the ledger."""

    state: TxState
    error: Optional[str] = None


class ConfirmationState(str, Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class ConfirmationStatus(BaseModel):
    """Terminal result of polling a transaction reference."""

    state: ConfirmationState
    reason: Optional[str] = None
    attempts: int = 0

    @property
    def is_confirmed(self) -> bool:
        return self.state is ConfirmationState.CONFIRMED


class OnChainTransfer(BaseModel):
    """Transfer values as recorded by the ledger for a confirmed transaction."""

    reference: str
    sender: Optional[str] = None
    recipient: Optional[str] = None
    amount: int = 0


class TransferErrorKind(str, Enum):
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    REJECTED_BY_LEDGER = "REJECTED_BY_LEDGER"
    TIMEOUT = "TIMEOUT"


class TransferOutcome(BaseModel):
    """Result of moving value on a ledger.

    A ``TIMEOUT`` outcome keeps ``reference``: the transfer may still land, so
    callers must re-check it instead of submitting again.
    """

    success: bool
    reference: Optional[str] = None
    error_kind: Optional[TransferErrorKind] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls, reference: str) -> "TransferOutcome":
        return cls(success=True, reference=reference)

    @classmethod
    def failed(
        cls,
        error_kind: TransferErrorKind,
        detail: str,
        reference: Optional[str] = None,
    ) -> "TransferOutcome":
        return cls(
            success=False, error_kind=error_kind, detail=detail, reference=reference
        )


def format_amount(atomic: int, decimals: int) -> str:
    """Render atomic units as a display amount with six decimal places."""
    value = Decimal(atomic) / (Decimal(10) ** decimals)
    return f"{value:.6f}"
