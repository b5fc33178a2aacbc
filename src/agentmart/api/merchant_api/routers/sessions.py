"""Chat session API routes (Merchant)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from prometheus_client import Counter

from ....application.merchant.dtos import (
    ChatMessageDTO,
    ChatResponseDTO,
    SessionResponseDTO,
)
from ....application.merchant.use_cases.order import MerchantService
from ....domain.errors import SessionNotFoundError
from ..dependencies import get_merchant_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


chat_messages_total = Counter(
    "chat_messages_total",
    "Chat messages handled by the merchant",
    ["kind"],
)


@router.post(
    "",
    response_model=SessionResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    merchant_service: MerchantService = Depends(get_merchant_service),
) -> SessionResponseDTO:
    """Open a chat session."""
    return merchant_service.create_session()


@router.post("/{session_id}/messages", response_model=ChatResponseDTO)
async def send_message(
    message: ChatMessageDTO,
    session_id: str = Path(..., description="Chat session identifier"),
    merchant_service: MerchantService = Depends(get_merchant_service),
) -> ChatResponseDTO:
    """Handle a shopper message; purchase intents answer with a payment requirement."""
    try:
        reply = merchant_service.handle_message(session_id, message.text)
    except SessionNotFoundError as e:
        chat_messages_total.labels(kind="not_found").inc()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        chat_messages_total.labels(kind="client_error").inc()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        chat_messages_total.labels(kind="server_error").inc()
        logger.exception("Failed to handle message for session %s", session_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to handle message: {str(e)}",
        )
    chat_messages_total.labels(kind=reply.kind).inc()
    return reply


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def close_session(
    session_id: str = Path(..., description="Chat session identifier"),
    merchant_service: MerchantService = Depends(get_merchant_service),
) -> Response:
    try:
        merchant_service.close_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
