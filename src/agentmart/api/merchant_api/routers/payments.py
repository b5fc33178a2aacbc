"""Payment settlement API routes (Merchant)."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Path, status
from prometheus_client import Counter, Histogram

from ....application.merchant.dtos import SettlePaymentDTO, SettlementResponseDTO
from ....application.merchant.use_cases.order import MerchantService
from ....domain.errors import NoPendingPaymentError, SessionNotFoundError
from ..dependencies import get_merchant_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["payments"])


payment_verifications_total = Counter(
    "payment_verifications_total",
    "Payment verdicts issued by the merchant",
    ["outcome"],
)

payment_verification_duration_seconds = Histogram(
    "payment_verification_duration_seconds",
    "Wall time to verify and settle a payment",
    ["outcome"],
)


def _observe(outcome: str, start_time: float) -> None:
    payment_verifications_total.labels(outcome=outcome).inc()
    payment_verification_duration_seconds.labels(outcome=outcome).observe(
        time.perf_counter() - start_time
    )


@router.post("/{session_id}/payments", response_model=SettlementResponseDTO)
async def settle_payment(
    body: SettlePaymentDTO,
    session_id: str = Path(..., description="Chat session identifier"),
    merchant_service: MerchantService = Depends(get_merchant_service),
) -> SettlementResponseDTO:
    """Verify a payment for the session's pending requirement.

    A rejected payment is a verdict (200 with ``accepted=false``), not an error.
    """
    start_time = time.perf_counter()
    try:
        result = await merchant_service.settle_payment(session_id, body.payload)
    except SessionNotFoundError as e:
        _observe("not_found", start_time)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except NoPendingPaymentError as e:
        _observe("no_pending_payment", start_time)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        _observe("client_error", start_time)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        _observe("server_error", start_time)
        logger.exception("Failed to settle payment for session %s", session_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process payment: {str(e)}",
        )

    if result.accepted:
        outcome = "accepted"
    else:
        outcome = result.rejection_reason.value if result.rejection_reason else "rejected"
    _observe(outcome, start_time)
    return result
