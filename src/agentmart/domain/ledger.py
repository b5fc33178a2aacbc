"""Protocol interface for ledger adapter implementations.

Each supported ledger (Solana devnet, an EVM testnet) provides one adapter that
satisfies this protocol. Payment verification and transfer execution depend on
the protocol only, never on a concrete chain SDK.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from .payments import OnChainTransfer, ProofType, TxStatus


@dataclass(frozen=True)
class SignedTransfer:
    """A signed, not yet submitted, transfer transaction."""

    reference: str
    raw: Any
    sender: str
    recipient: str
    amount: int


@runtime_checkable
class LedgerAdapter(Protocol):
    """Capability set the payment flow needs from a ledger.

    Implementations should raise:
    - ``LedgerUnavailableError`` when the RPC endpoint fails
    - ``InsufficientFundsError`` when the sender cannot cover a transfer
    - ``TransferRejectedError`` when the ledger refuses a submission
    """

    network: str
    native_asset: str
    decimals: int

    def address_of(self, credential: Any) -> str:
        """Return the ledger address controlled by ``credential``."""
        ...

    async def get_balance(self, address: str) -> int:
        """Return the balance of ``address`` in atomic units."""
        ...

    async def build_transfer(
        self, credential: Any, recipient: str, amount: int
    ) -> SignedTransfer:
        """Fetch a recent ledger anchor, then build and sign a transfer."""
        ...

    async def submit(self, signed: SignedTransfer) -> str:
        """Submit a signed transfer and return its reference."""
        ...

    async def get_status(self, reference: str) -> Optional[TxStatus]:
        """Query the status of a reference once. ``None`` means not seen yet."""
        ...

    async def get_transfer(self, reference: str) -> Optional[OnChainTransfer]:
        """Return sender, recipient and amount recorded for a reference."""
        ...

    async def request_test_funds(self, address: str, amount: int) -> str:
        """Ask the network faucet for funds. Test networks only."""
        ...

    def sign_message(self, credential: Any, message: bytes) -> str:
        """Sign arbitrary bytes and return the encoded signature."""
        ...

    def verify_message(self, address: str, message: bytes, signature: str) -> bool:
        """Check that ``signature`` over ``message`` was made by ``address``."""
        ...

    def is_well_formed_proof(self, proof: str, proof_type: ProofType) -> bool:
        """Sanity-check the encoding of a proof string."""
        ...

    def canonical_proof(self, proof: str, proof_type: ProofType) -> str:
        """Return the one spelling of ``proof`` that identifies it on this ledger."""
        ...

    async def aclose(self) -> None:
        """Release the underlying RPC client."""
        ...


class LedgerRegistry:
    """Maps network identifiers to the adapter serving them."""

    def __init__(self, ledgers: Optional[list[LedgerAdapter]] = None) -> None:
        self._ledgers: dict[str, LedgerAdapter] = {}
        for ledger in ledgers or []:
            self.register(ledger)

    def register(self, ledger: LedgerAdapter) -> None:
        self._ledgers[ledger.network] = ledger

    def get(self, network: str) -> Optional[LedgerAdapter]:
        return self._ledgers.get(network)

    @property
    def networks(self) -> list[str]:
        return list(self._ledgers)

    async def aclose(self) -> None:
        for ledger in self._ledgers.values():
            await ledger.aclose()
