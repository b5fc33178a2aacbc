"""Canonical bytes signed by a payer to authorize a payment."""

from __future__ import annotations

import json
from datetime import datetime

from ...domain.payments import PaymentRequirement


def json_to_bytes(data: dict) -> bytes:
    """Serialize dict to canonical JSON bytes for signing/verification."""
    return json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")


def canonical_payment_message(
    requirement: PaymentRequirement,
    sender_address: str,
    amount: int,
    timestamp: datetime,
) -> bytes:
    """Build the message both sides derive from a requirement and a payload."""
    return json_to_bytes(
        {
            "scheme": requirement.scheme.value,
            "network": requirement.network,
            "asset": requirement.asset,
            "pay_to": requirement.recipient_address,
            "from": sender_address,
            "amount": str(amount),
            "resource": requirement.resource,
            "timestamp": timestamp.isoformat(),
        }
    )
