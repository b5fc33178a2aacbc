"""Bounded polling of a transaction reference until it reaches a terminal state."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ...domain.errors import LedgerUnavailableError
from ...domain.payments import (
    ConfirmationState,
    ConfirmationStatus,
    TxState,
    TxStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_INTERVAL_SECONDS = 1.0

StatusQuery = Callable[[str], Awaitable[Optional[TxStatus]]]
Sleep = Callable[[float], Awaitable[None]]


async def await_confirmation(
    get_status: StatusQuery,
    reference: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval: float = DEFAULT_INTERVAL_SECONDS,
    *,
    deadline: Optional[float] = None,
    sleep: Sleep = asyncio.sleep,
) -> ConfirmationStatus:
    """Poll ``get_status`` until the reference is confirmed, failed, or out of budget.

    Args:
        get_status: One status query against the ledger.
        reference: Transaction signature or hash.
        max_attempts: Number of status queries before giving up.
        interval: Seconds to wait between two queries.
        deadline: Optional event-loop time (``loop.time()``) after which the
            poller stops waiting even if attempts remain.
        sleep: Awaitable used between queries.

    Returns:
        ``CONFIRMED`` on the first terminal success, ``FAILED`` on the first
        execution error, ``TIMED_OUT`` when the attempts or the deadline run out.

    Raises:
        LedgerUnavailableError: If the final attempt could not reach the ledger.
        ValueError: If ``max_attempts`` is lower than one.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    loop = asyncio.get_running_loop()

    for attempt in range(1, max_attempts + 1):
        try:
            status = await get_status(reference)
        except LedgerUnavailableError as e:
            if attempt == max_attempts:
                raise
            logger.warning(
                "Status query %d/%d for %s failed: %s",
                attempt,
                max_attempts,
                reference,
                e,
            )
            status = None

        if status is not None:
            if status.state is TxState.CONFIRMED:
                logger.info("Transaction %s confirmed after %d poll(s)", reference, attempt)
                return ConfirmationStatus(
                    state=ConfirmationState.CONFIRMED, attempts=attempt
                )
            if status.state is TxState.FAILED:
                logger.warning("Transaction %s failed: %s", reference, status.error)
                return ConfirmationStatus(
                    state=ConfirmationState.FAILED,
                    reason=status.error or "Transaction failed",
                    attempts=attempt,
                )

        if attempt == max_attempts:
            break

        if deadline is not None and loop.time() + interval > deadline:
            logger.info("Deadline reached while waiting for %s", reference)
            return ConfirmationStatus(
                state=ConfirmationState.TIMED_OUT,
                reason="Deadline reached before confirmation",
                attempts=attempt,
            )

        await sleep(interval)

    logger.warning(
        "Transaction %s not confirmed after %d attempts", reference, max_attempts
    )
    return ConfirmationStatus(
        state=ConfirmationState.TIMED_OUT,
        reason="Transaction confirmation timeout",
        attempts=max_attempts,
    )
