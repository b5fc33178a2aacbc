"""Payer-side agent: chats with the merchant and pays on the user's behalf."""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from ...domain.errors import LedgerError, PaymentFailedError
from ...domain.payments import (
    ConfirmationState,
    PaymentPayload,
    PaymentRequirement,
    TransferErrorKind,
    format_amount,
)
from ...domain.shared import MerchantClientProtocol
from ...infrastructure.ledgers.explorer import tx_url
from ..merchant.dtos import SettlementResponseDTO
from ..shared.confirmation import await_confirmation
from .session import PurchaseSession
from .use_cases.payment_signer import PaymentSigner, SigningMode

logger = logging.getLogger(__name__)

DEFAULT_AIRDROP_LAMPORTS = 2_000_000_000

_NETWORK_LABELS = {
    "base-sepolia": "Base Sepolia",
    "solana-devnet": "Solana Devnet",
}

_UNKNOWN_OUTCOME = (TransferErrorKind.TIMEOUT, TransferErrorKind.NETWORK_UNREACHABLE)

_CONFIRM_RE = re.compile(r"^\s*(?:yes|y|confirm|proceed|pay|ok(?:ay)?)\b", re.IGNORECASE)
_CANCEL_RE = re.compile(r"^\s*(?:no|cancel|abort|never\s*mind)\b", re.IGNORECASE)
_WALLET_RE = re.compile(r"\b(?:wallet|balances?)\b", re.IGNORECASE)
_AIRDROP_RE = re.compile(r"\bairdrop\b(?:\s+(?P<amount>\d+))?", re.IGNORECASE)
_TRANSFER_RE = re.compile(
    r"^\s*(?:transfer|send)\s+(?P<amount>\d+)\s+(?:\w+\s+)?to\s+(?P<recipient>\S+)"
    r"(?:\s+on\s+(?P<network>\S+))?",
    re.IGNORECASE,
)


def network_label(network: str) -> str:
    return _NETWORK_LABELS.get(network, network)


class ClientAgent:
    """Tools of the payer agent, bound to one conversation.

    Every tool returns human-readable text; transport and ledger failures are
    reported in that text rather than raised.
    """

    def __init__(
        self,
        merchant: MerchantClientProtocol,
        signers: list[PaymentSigner],
        *,
        session: Optional[PurchaseSession] = None,
        faucet_network: str = "solana-devnet",
    ) -> None:
        self.merchant = merchant
        self.signers = {signer.ledger.network: signer for signer in signers}
        self.session = session or PurchaseSession()
        self.faucet_network = faucet_network

    async def send_message(self, text: str) -> str:
        """Forward a message to the merchant and summarize the reply."""
        try:
            session_id = await self._ensure_session()
            reply = await self.merchant.send_message(session_id, text)
        except httpx.HTTPStatusError as e:
            logger.error("Merchant returned an error: %s", e)
            return (
                "Sorry, I couldn't connect to the merchant. "
                f"Server error: {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.error("Failed to contact merchant: %s", e)
            return f"Failed to contact merchant: {e}"

        if reply.kind == "payment_required" and reply.requirement is not None:
            self.session.hold(reply.requirement)
            return self._describe_requirement(reply.requirement)
        return f"Merchant says: {reply.text}"

    async def confirm_payment(self, mode: SigningMode = "transfer") -> str:
        """Pay the pending requirement and hand the proof to the merchant.

        A transfer already submitted for the requirement is re-checked instead
        of being paid again.
        """
        requirement = self.session.pending_requirement
        if requirement is None:
            return "No pending payment to confirm."

        logger.info("User confirmed payment. Processing...")
        signer = self.signers.get(requirement.network)
        if signer is None:
            return (
                "Payment processing failed: no wallet configured for "
                f"{network_label(requirement.network)}"
            )

        if self.session.inflight_reference is not None:
            return await self._resume_payment(
                signer, requirement, self.session.inflight_reference
            )

        try:
            payload = await signer.sign(requirement, mode=mode)
        except PaymentFailedError as e:
            outcome = e.outcome
            if outcome.reference and outcome.error_kind in _UNKNOWN_OUTCOME:
                self.session.track(outcome.reference)
                headline = (
                    "Payment transfer timed out"
                    if outcome.error_kind is TransferErrorKind.TIMEOUT
                    else "Payment transfer outcome unknown"
                )
                return (
                    f"{headline}: {outcome.detail}\n"
                    f"Transaction: {outcome.reference}\n"
                    f"View: {tx_url(requirement.network, outcome.reference)}\n"
                    "Confirm again to re-check it; it will not be sent twice."
                )
            return f"Payment transfer failed: {outcome.detail}"
        except ValueError as e:
            return f"Payment processing failed: {e}"

        return await self._settle(requirement, payload)

    async def _resume_payment(
        self, signer: PaymentSigner, requirement: PaymentRequirement, reference: str
    ) -> str:
        logger.info("Re-checking in-flight transfer %s", reference)
        try:
            status = await signer.executor.check(reference)
        except LedgerError as e:
            return (
                f"Could not check transaction {reference}: {e}\n"
                "It has not been resubmitted."
            )

        if status.state is ConfirmationState.FAILED:
            self.session.inflight_reference = None
            return (
                "Payment transfer failed: "
                f"{status.reason or 'Transaction failed on-chain'}\n"
                f"Transaction: {reference}\n"
                "Confirm again to retry the payment."
            )
        if not status.is_confirmed:
            return (
                f"Payment transfer still pending: {status.reason}\n"
                f"Transaction: {reference}\n"
                "It has not been resubmitted; confirm again to re-check."
            )
        payload = signer.from_reference(requirement, reference)
        return await self._settle(requirement, payload)

    async def _settle(self, requirement: PaymentRequirement, payload: PaymentPayload) -> str:
        # The requirement has been paid; it must not be paid twice
        self.session.clear_pending()
        self.session.last_reference = payload.proof

        try:
            verdict = await self.merchant.submit_payment(
                self.session.merchant_session_id or "", payload
            )
        except httpx.HTTPError as e:
            logger.error("Failed to notify merchant: %s", e)
            return (
                f"Payment sent but the merchant could not be notified: {e}\n"
                f"Transaction: {payload.proof}"
            )

        return self._describe_settlement(requirement, payload.proof, verdict)

    async def cancel_payment(self) -> str:
        if not self.session.has_pending_payment:
            return "No pending payment to cancel."
        logger.info("User cancelled payment")
        inflight = self.session.inflight_reference
        self.session.clear_pending()
        if inflight is not None:
            return (
                "Payment cancelled. "
                f"Transaction {inflight} was already submitted and may still land."
            )
        return "Payment cancelled."

    async def wallet_info(self) -> str:
        lines = ["**Multi-Chain Wallet Info:**"]
        for network, signer in self.signers.items():
            ledger = signer.ledger
            try:
                balance = await ledger.get_balance(signer.address)
                shown = f"{format_amount(balance, ledger.decimals)} {ledger.native_asset}"
            except LedgerError as e:
                shown = f"unavailable ({e})"
            lines.append("")
            lines.append(f"**{network_label(network)}**")
            lines.append(f"   Address: {signer.address}")
            lines.append(f"   Balance: {shown}")
        return "\n".join(lines)

    async def request_airdrop(self, amount: int = DEFAULT_AIRDROP_LAMPORTS) -> str:
        """Ask the Solana devnet faucet for funds and wait for them to land."""
        signer = self.signers.get(self.faucet_network)
        if signer is None:
            return f"Airdrop failed: no wallet configured for {network_label(self.faucet_network)}"
        ledger = signer.ledger

        try:
            reference = await ledger.request_test_funds(signer.address, amount)
            status = await await_confirmation(
                ledger.get_status,
                reference,
                signer.executor.max_attempts,
                signer.executor.interval,
            )
        except LedgerError as e:
            return f"Airdrop failed: {e}"

        shown = format_amount(amount, ledger.decimals)
        if not status.is_confirmed:
            return (
                f"Airdrop of {shown} {ledger.native_asset} not confirmed: {status.reason}\n"
                f"Transaction: {reference}"
            )
        return (
            f"Airdrop received: {shown} {ledger.native_asset}\n"
            f"Transaction: {reference}\n"
            f"View: {tx_url(ledger.network, reference)}"
        )

    async def transfer(
        self, recipient: str, amount: int, network: Optional[str] = None
    ) -> str:
        """Send ``amount`` atomic units to ``recipient`` outside of any purchase."""
        if not recipient or amount <= 0:
            return "Please provide both recipient address and amount"
        network = network or self.faucet_network
        signer = self.signers.get(network)
        if signer is None:
            return f"Transfer failed: no wallet configured for {network_label(network)}"

        outcome = await signer.executor.transfer(signer.credential, recipient, amount)
        if not outcome.success:
            return f"Transfer failed: {outcome.detail}"

        ledger = signer.ledger
        return (
            f"Transfer successful: {format_amount(amount, ledger.decimals)} "
            f"{ledger.native_asset} to {recipient}\n"
            f"Transaction: {outcome.reference}\n"
            f"View: {tx_url(network, outcome.reference or '')}"
        )

    async def handle(self, text: str) -> str:
        """Route free text to a tool; anything unrecognised goes to the merchant."""
        if self.session.has_pending_payment:
            if _CONFIRM_RE.search(text):
                return await self.confirm_payment()
            if _CANCEL_RE.search(text):
                return await self.cancel_payment()

        match = _TRANSFER_RE.search(text)
        if match:
            network = match.group("network")
            if network and network.lower() in {"evm", "base", "usdc"}:
                network = "base-sepolia"
            elif network and network.lower() in {"solana", "sol"}:
                network = "solana-devnet"
            return await self.transfer(
                match.group("recipient"), int(match.group("amount")), network
            )

        match = _AIRDROP_RE.search(text)
        if match:
            amount = match.group("amount")
            return await self.request_airdrop(
                int(amount) if amount else DEFAULT_AIRDROP_LAMPORTS
            )

        if _WALLET_RE.search(text):
            return await self.wallet_info()

        return await self.send_message(text)

    async def close(self) -> None:
        """End the conversation and its merchant session."""
        session_id = self.session.merchant_session_id
        self.session = PurchaseSession()
        if session_id is None:
            return
        try:
            await self.merchant.close_session(session_id)
        except httpx.HTTPError as e:
            logger.warning("Failed to close merchant session %s: %s", session_id, e)

    async def _ensure_session(self) -> str:
        if self.session.merchant_session_id is None:
            created = await self.merchant.create_session()
            self.session.merchant_session_id = created.session_id
            logger.info("Merchant session opened: %s", created.session_id)
        return self.session.merchant_session_id

    def _display(self, network: str, amount: int, asset_name: str) -> str:
        signer = self.signers.get(network)
        if signer is None:
            return f"{amount} atomic units of {asset_name}"
        return f"{format_amount(amount, signer.ledger.decimals)} {asset_name}"

    def _describe_requirement(self, requirement: PaymentRequirement) -> str:
        asset_name = requirement.extra.get("name") or requirement.asset
        price = self._display(requirement.network, requirement.required_amount, asset_name)
        network = network_label(requirement.network)
        return (
            f"The merchant is selling {requirement.product_name} for {price} on {network}.\n"
            "\n"
            "**Payment Details:**\n"
            f"- Product: {requirement.product_name}\n"
            f"- Price: {price}\n"
            f"- Network: {network}\n"
            f"- Payment Token: {asset_name}\n"
            "\n"
            "Would you like to proceed with this payment?"
        )

    def _describe_settlement(
        self,
        requirement: PaymentRequirement,
        reference: str,
        verdict: SettlementResponseDTO,
    ) -> str:
        asset_name = requirement.extra.get("name") or requirement.asset
        amount = self._display(requirement.network, requirement.required_amount, asset_name)
        details = (
            "**Transaction Details:**\n"
            f"- Product: {requirement.product_name}\n"
            f"- Amount: {amount}\n"
            f"- Transaction: {reference}\n"
            f"- View: {tx_url(requirement.network, reference)}"
        )
        if verdict.accepted:
            message = verdict.order.message if verdict.order else "Order confirmed."
            return (
                f"{network_label(requirement.network)} payment completed!\n\n"
                f"{details}\n\n"
                f"Merchant says: {message}"
            )
        reason = verdict.rejection_reason.value if verdict.rejection_reason else "UNKNOWN"
        return (
            f"Payment was sent but the merchant rejected it ({reason}): {verdict.detail}\n\n"
            f"{details}"
        )
