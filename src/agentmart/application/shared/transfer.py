"""Transfer execution: build, sign, submit once, then wait for confirmation."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...domain.errors import (
    InsufficientFundsError,
    LedgerUnavailableError,
    TransferRejectedError,
)
from ...domain.ledger import LedgerAdapter
from ...domain.payments import (
    ConfirmationState,
    ConfirmationStatus,
    TransferErrorKind,
    TransferOutcome,
)
from ...middleware.timing import log_timing
from .confirmation import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    await_confirmation,
)

logger = logging.getLogger(__name__)


class TransferExecutor:
    """Moves value on one ledger and reports a ``TransferOutcome``.

    A submitted transaction is never resubmitted here. When confirmation times
    out the outcome keeps the reference so the caller can call ``check`` later.
    """

    def __init__(
        self,
        ledger: LedgerAdapter,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.ledger = ledger
        self.max_attempts = max_attempts
        self.interval = interval

    @log_timing("transfer")
    async def transfer(
        self,
        credential: Any,
        recipient: str,
        amount: int,
        *,
        deadline: Optional[float] = None,
    ) -> TransferOutcome:
        if not recipient:
            raise ValueError("Recipient address is required")
        if amount <= 0:
            raise ValueError("Transfer amount must be positive")

        logger.info(
            "Transferring %d atomic units to %s on %s",
            amount,
            recipient,
            self.ledger.network,
        )

        reference: Optional[str] = None
        try:
            signed = await self.ledger.build_transfer(credential, recipient, amount)
            reference = await self.ledger.submit(signed)
            logger.info("Transaction sent: %s", reference)
            status = await await_confirmation(
                self.ledger.get_status,
                reference,
                self.max_attempts,
                self.interval,
                deadline=deadline,
            )
        except InsufficientFundsError as e:
            return TransferOutcome.failed(TransferErrorKind.INSUFFICIENT_FUNDS, str(e))
        except TransferRejectedError as e:
            return TransferOutcome.failed(
                TransferErrorKind.REJECTED_BY_LEDGER, str(e), reference
            )
        except LedgerUnavailableError as e:
            return TransferOutcome.failed(
                TransferErrorKind.NETWORK_UNREACHABLE,
                str(e),
                reference or e.reference,
            )

        return self._outcome(reference, status)

    async def check(self, reference: str) -> ConfirmationStatus:
        """Look up a previously submitted reference once, without waiting."""
        return await await_confirmation(self.ledger.get_status, reference, 1)

    @staticmethod
    def _outcome(reference: str, status: ConfirmationStatus) -> TransferOutcome:
        if status.state is ConfirmationState.CONFIRMED:
            logger.info("Transfer successful: %s", reference)
            return TransferOutcome.ok(reference)
        if status.state is ConfirmationState.FAILED:
            return TransferOutcome.failed(
                TransferErrorKind.REJECTED_BY_LEDGER,
                status.reason or "Transaction failed on-chain",
                reference,
            )
        return TransferOutcome.failed(
            TransferErrorKind.TIMEOUT,
            "Confirmation timed out; outcome unknown. "
            "Re-check the reference before resubmitting.",
            reference,
        )
