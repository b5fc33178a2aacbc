"""Solana devnet adapter for native SOL payments."""

from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from ...domain.errors import (
    InsufficientFundsError,
    LedgerUnavailableError,
    TransferRejectedError,
)
from ...domain.ledger import SignedTransfer
from ...domain.payments import OnChainTransfer, ProofType, TxState, TxStatus

logger = logging.getLogger(__name__)

SOLANA_NETWORK = "solana-devnet"
DEFAULT_SOLANA_RPC_URL = "https://api.devnet.solana.com"
LAMPORTS_PER_SOL = 1_000_000_000
SIGNATURE_FEE_LAMPORTS = 5_000

_TERMINAL_SUCCESS = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


def load_keypair(private_key: Optional[str] = None) -> Keypair:
    """Load a keypair from a base58 secret or a JSON byte array.

    Generates a fresh ephemeral keypair when no secret is given.
    """
    if not private_key or not private_key.strip():
        return Keypair()
    secret = private_key.strip()
    if secret.startswith("["):
        key_bytes = json.loads(secret)
        if not isinstance(key_bytes, list) or not all(
            isinstance(b, int) for b in key_bytes
        ):
            raise ValueError("Invalid JSON private key; expected a list of ints")
        return Keypair.from_bytes(bytes(key_bytes))
    return Keypair.from_base58_string(secret)


def export_keypair(keypair: Keypair) -> str:
    """Base58 encoding of the 64-byte secret, accepted by ``load_keypair``."""
    return str(keypair)


def transfer_from_balances(
    reference: str,
    account_keys: Sequence[str],
    pre_balances: Sequence[int],
    post_balances: Sequence[int],
) -> OnChainTransfer:
    """Derive sender, recipient and amount of a SOL transfer from balance deltas.

    The fee payer (first account) is the sender. The recipient is the account
    whose balance grew the most; the amount is that growth, excluding fees.
    """
    sender = account_keys[0] if account_keys else None
    recipient: Optional[str] = None
    amount = 0
    for index, key in enumerate(account_keys):
        if index == 0 or index >= len(pre_balances) or index >= len(post_balances):
            continue
        delta = post_balances[index] - pre_balances[index]
        if delta > amount:
            recipient, amount = key, delta
    return OnChainTransfer(
        reference=reference, sender=sender, recipient=recipient, amount=amount
    )


class SolanaLedger:
    """``LedgerAdapter`` over a Solana JSON-RPC endpoint.

    Credentials are ``solders.keypair.Keypair`` instances. Amounts are lamports.
    """

    native_asset = "SOL"
    decimals = 9

    def __init__(
        self,
        rpc_url: str = DEFAULT_SOLANA_RPC_URL,
        network: str = SOLANA_NETWORK,
        client: Optional[AsyncClient] = None,
    ) -> None:
        self.network = network
        self.rpc_url = rpc_url
        self._client = client or AsyncClient(rpc_url, commitment=Confirmed)

    def address_of(self, credential: Keypair) -> str:
        return str(credential.pubkey())

    async def get_balance(self, address: str) -> int:
        try:
            resp = await self._client.get_balance(
                Pubkey.from_string(address), commitment=Confirmed
            )
        except (SolanaRpcException, RPCException) as e:
            raise LedgerUnavailableError(f"Failed to get SOL balance: {e}") from e
        return resp.value

    async def build_transfer(
        self, credential: Keypair, recipient: str, amount: int
    ) -> SignedTransfer:
        try:
            to_pubkey = Pubkey.from_string(recipient)
        except ValueError as e:
            raise TransferRejectedError(f"Invalid Solana address: {recipient}") from e

        sender = self.address_of(credential)
        balance = await self.get_balance(sender)
        if balance < amount + SIGNATURE_FEE_LAMPORTS:
            raise InsufficientFundsError(
                f"Insufficient balance. Have {balance} lamports, "
                f"need {amount + SIGNATURE_FEE_LAMPORTS} lamports (including fee)"
            )

        try:
            blockhash_resp = await self._client.get_latest_blockhash(commitment=Confirmed)
        except (SolanaRpcException, RPCException) as e:
            raise LedgerUnavailableError(f"Failed to get latest blockhash: {e}") from e

        instruction = transfer(
            TransferParams(
                from_pubkey=credential.pubkey(),
                to_pubkey=to_pubkey,
                lamports=amount,
            )
        )
        tx = Transaction.new_signed_with_payer(
            [instruction],
            credential.pubkey(),
            [credential],
            blockhash_resp.value.blockhash,
        )
        return SignedTransfer(
            reference=str(tx.signatures[0]),
            raw=tx,
            sender=sender,
            recipient=recipient,
            amount=amount,
        )

    async def submit(self, signed: SignedTransfer) -> str:
        try:
            resp = await self._client.send_raw_transaction(
                bytes(signed.raw), opts=TxOpts(preflight_commitment=Confirmed)
            )
        except RPCException as e:
            if "insufficient" in str(e).lower():
                raise InsufficientFundsError(str(e)) from e
            raise TransferRejectedError(f"Transaction rejected: {e}") from e
        except SolanaRpcException as e:
            # The transaction may have reached the cluster; keep its signature
            raise LedgerUnavailableError(
                f"Failed to send transaction: {e}", reference=signed.reference
            ) from e
        return str(resp.value)

    async def get_status(self, reference: str) -> Optional[TxStatus]:
        try:
            resp = await self._client.get_signature_statuses(
                [Signature.from_string(reference)], search_transaction_history=True
            )
        except (SolanaRpcException, RPCException) as e:
            raise LedgerUnavailableError(f"Failed to get signature status: {e}") from e

        status = resp.value[0] if resp.value else None
        if status is None:
            return None
        if status.err is not None:
            return TxStatus(state=TxState.FAILED, error=f"Transaction failed: {status.err}")
        if status.confirmation_status in _TERMINAL_SUCCESS:
            return TxStatus(state=TxState.CONFIRMED)
        return TxStatus(state=TxState.PENDING)

    async def get_transfer(self, reference: str) -> Optional[OnChainTransfer]:
        try:
            resp = await self._client.get_transaction(
                Signature.from_string(reference),
                encoding="json",
                commitment=Confirmed,
                max_supported_transaction_version=0,
            )
        except (SolanaRpcException, RPCException) as e:
            raise LedgerUnavailableError(f"Failed to get transaction: {e}") from e

        if resp.value is None:
            return None
        tx = resp.value.transaction
        meta = tx.meta
        if meta is None or meta.err is not None:
            return None
        account_keys = [str(key) for key in tx.transaction.message.account_keys]
        return transfer_from_balances(
            reference, account_keys, meta.pre_balances, meta.post_balances
        )

    async def request_test_funds(self, address: str, amount: int) -> str:
        logger.info("Requesting airdrop of %d lamports to %s", amount, address)
        try:
            resp = await self._client.request_airdrop(Pubkey.from_string(address), amount)
        except RPCException as e:
            raise TransferRejectedError(f"Airdrop rejected: {e}") from e
        except SolanaRpcException as e:
            raise LedgerUnavailableError(f"Airdrop request failed: {e}") from e
        return str(resp.value)

    def sign_message(self, credential: Keypair, message: bytes) -> str:
        return str(credential.sign_message(message))

    def verify_message(self, address: str, message: bytes, signature: str) -> bool:
        try:
            pubkey = Pubkey.from_string(address)
            sig = Signature.from_string(signature)
        except ValueError:
            return False
        return sig.verify(pubkey, message)

    def is_well_formed_proof(self, proof: str, proof_type: ProofType) -> bool:
        # Transaction references and message signatures are both ed25519 signatures
        try:
            Signature.from_string(proof)
        except ValueError:
            return False
        return True

    def canonical_proof(self, proof: str, proof_type: ProofType) -> str:
        try:
            return str(Signature.from_string(proof))
        except ValueError:
            return proof

    async def aclose(self) -> None:
        await self._client.close()
