"""EVM adapter for ERC-20 stablecoin payments (USDC on Base Sepolia)."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional

import aiohttp
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception

from ...domain.errors import (
    InsufficientFundsError,
    LedgerUnavailableError,
    TransferRejectedError,
)
from ...domain.ledger import SignedTransfer
from ...domain.payments import OnChainTransfer, ProofType, TxState, TxStatus

logger = logging.getLogger(__name__)

EVM_NETWORK = "base-sepolia"
DEFAULT_EVM_RPC_URL = "https://sepolia.base.org"
USDC_BASE_SEPOLIA = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
TRANSFER_GAS_LIMIT = 100_000

TRANSFER_EVENT_TOPIC = Web3.keccak(text="Transfer(address,address,uint256)").hex()

ERC20_ABI: list[dict[str, Any]] = [
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_SIGNATURE_RE = re.compile(r"^0x[0-9a-fA-F]{130}$")

_RPC_ERRORS = (Web3Exception, aiohttp.ClientError, OSError, asyncio.TimeoutError)


def load_account(private_key: Optional[str] = None) -> LocalAccount:
    """Load an account from a hex private key, or create an ephemeral one."""
    if not private_key or not private_key.strip():
        return Account.create()
    return Account.from_key(private_key.strip())


def export_account(account: LocalAccount) -> str:
    return Web3.to_hex(account.key)


def _strip_0x(value: Any) -> str:
    text = value if isinstance(value, str) else Web3.to_hex(value)
    return text[2:] if text.startswith("0x") else text


def _topic_to_address(topic: Any) -> str:
    raw = _strip_0x(topic)
    return Web3.to_checksum_address("0x" + raw[-40:])


def transfer_from_receipt(
    reference: str, receipt: Any, token_address: str
) -> Optional[OnChainTransfer]:
    """Decode the first ERC-20 ``Transfer`` log of ``token_address`` in a receipt."""
    token = token_address.lower()
    for log in receipt["logs"]:
        if str(log["address"]).lower() != token:
            continue
        topics = log["topics"]
        if len(topics) < 3 or _strip_0x(topics[0]) != _strip_0x(
            TRANSFER_EVENT_TOPIC
        ):
            continue
        data = log["data"]
        value = int(_strip_0x(data) or "0", 16)
        return OnChainTransfer(
            reference=reference,
            sender=_topic_to_address(topics[1]),
            recipient=_topic_to_address(topics[2]),
            amount=value,
        )
    return None


class EvmLedger:
    """``LedgerAdapter`` for one ERC-20 token on an EVM JSON-RPC endpoint.

    Credentials are ``eth_account`` local accounts. Amounts are token atomic
    units (6 decimals for USDC).
    """

    native_asset = "USDC"
    decimals = 6

    def __init__(
        self,
        rpc_url: str = DEFAULT_EVM_RPC_URL,
        token_address: str = USDC_BASE_SEPOLIA,
        network: str = EVM_NETWORK,
        web3: Optional[AsyncWeb3] = None,
    ) -> None:
        self.network = network
        self.rpc_url = rpc_url
        self.token_address = Web3.to_checksum_address(token_address)
        self._w3 = web3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._token = self._w3.eth.contract(address=self.token_address, abi=ERC20_ABI)

    def address_of(self, credential: LocalAccount) -> str:
        return credential.address

    async def get_balance(self, address: str) -> int:
        try:
            return await self._token.functions.balanceOf(
                Web3.to_checksum_address(address)
            ).call()
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"Failed to get token balance: {e}") from e

    async def build_transfer(
        self, credential: LocalAccount, recipient: str, amount: int
    ) -> SignedTransfer:
        if not Web3.is_address(recipient):
            raise TransferRejectedError(f"Invalid EVM address: {recipient}")
        to_address = Web3.to_checksum_address(recipient)

        balance = await self.get_balance(credential.address)
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient {self.native_asset} balance. Have {balance}, need {amount}"
            )

        try:
            nonce = await self._w3.eth.get_transaction_count(credential.address)
            gas_price = await self._w3.eth.gas_price
            chain_id = await self._w3.eth.chain_id
            tx = await self._token.functions.transfer(to_address, amount).build_transaction(
                {
                    "from": credential.address,
                    "nonce": nonce,
                    "gas": TRANSFER_GAS_LIMIT,
                    "gasPrice": gas_price,
                    "chainId": chain_id,
                }
            )
        except ContractLogicError as e:
            raise TransferRejectedError(f"Token transfer would revert: {e}") from e
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"Failed to prepare transaction: {e}") from e

        signed = credential.sign_transaction(tx)
        return SignedTransfer(
            reference=Web3.to_hex(signed.hash),
            raw=signed.raw_transaction,
            sender=credential.address,
            recipient=to_address,
            amount=amount,
        )

    async def submit(self, signed: SignedTransfer) -> str:
        try:
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw)
        except ContractLogicError as e:
            raise TransferRejectedError(f"Transaction reverted: {e}") from e
        except _RPC_ERRORS as e:
            message = str(e).lower()
            if "insufficient funds" in message:
                raise InsufficientFundsError(str(e)) from e
            if "nonce" in message or "underpriced" in message:
                raise TransferRejectedError(f"Transaction rejected: {e}") from e
            raise LedgerUnavailableError(
                f"Failed to send transaction: {e}", reference=signed.reference
            ) from e
        return Web3.to_hex(tx_hash)

    async def _receipt(self, reference: str) -> Optional[Any]:
        try:
            return await self._w3.eth.get_transaction_receipt(reference)
        except TransactionNotFound:
            return None
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"Failed to get receipt: {e}") from e

    async def get_status(self, reference: str) -> Optional[TxStatus]:
        receipt = await self._receipt(reference)
        if receipt is None:
            return None
        if receipt["status"] == 1:
            return TxStatus(state=TxState.CONFIRMED)
        return TxStatus(state=TxState.FAILED, error="Transaction reverted")

    async def get_transfer(self, reference: str) -> Optional[OnChainTransfer]:
        receipt = await self._receipt(reference)
        if receipt is None or receipt["status"] != 1:
            return None
        return transfer_from_receipt(reference, receipt, self.token_address)

    async def request_test_funds(self, address: str, amount: int) -> str:
        raise TransferRejectedError(
            f"No faucet available on {self.network}; fund {address} manually"
        )

    def sign_message(self, credential: LocalAccount, message: bytes) -> str:
        signed = credential.sign_message(encode_defunct(primitive=message))
        return Web3.to_hex(signed.signature)

    def verify_message(self, address: str, message: bytes, signature: str) -> bool:
        if not _SIGNATURE_RE.match(signature):
            return False
        try:
            recovered = Account.recover_message(
                encode_defunct(primitive=message), signature=signature
            )
        except ValueError:
            return False
        return recovered.lower() == address.lower()

    def is_well_formed_proof(self, proof: str, proof_type: ProofType) -> bool:
        if proof_type is ProofType.AUTHORIZATION:
            return bool(_SIGNATURE_RE.match(proof))
        return bool(_TX_HASH_RE.match(proof))

    def canonical_proof(self, proof: str, proof_type: ProofType) -> str:
        # Hex is case-insensitive; nodes resolve every spelling to one receipt
        return proof.lower()

    async def aclose(self) -> None:
        provider = self._w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
