"""FastAPI dependencies and service wiring for the merchant API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from solders.keypair import Keypair
from web3 import Web3

from ...application.merchant.session_store import SessionStore
from ...application.merchant.use_cases.order import MerchantService, Offering
from ...application.merchant.use_cases.payment_verifier import PaymentVerifier
from ...application.merchant.use_cases.requirement_builder import (
    EVM_NETWORK,
    SOLANA_NETWORK,
    PriceTable,
)
from ...domain.ledger import LedgerRegistry
from ...envs.merchant_env import Settings
from ...infrastructure.database import DatabaseClient
from ...infrastructure.ledgers.evm_ledger import EvmLedger
from ...infrastructure.ledgers.solana_ledger import SolanaLedger, load_keypair
from ...infrastructure.merchant.proof_registry_impl import ProofRegistryImpl
from ...infrastructure.storage import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
)


@dataclass
class MerchantContainer:
    """Long-lived objects of one merchant worker, built at startup."""

    service: MerchantService
    ledgers: LedgerRegistry
    db_client: Optional[DatabaseClient] = None

    async def aclose(self) -> None:
        await self.ledgers.aclose()
        if self.db_client is not None:
            await self.db_client.close()


def build_offerings(settings: Settings, solana_keypair: Keypair) -> list[Offering]:
    return [
        Offering(
            network=EVM_NETWORK,
            # Ledger receipts report checksummed addresses
            recipient_address=Web3.to_checksum_address(settings.wallet_address),
            asset=settings.usdc_contract,
            asset_name="USDC",
            decimals=6,
        ),
        Offering(
            network=SOLANA_NETWORK,
            recipient_address=str(solana_keypair.pubkey()),
            asset="SOL",
            asset_name="SOL",
            decimals=9,
            extra={"blockchain": "solana"},
        ),
    ]


def build_container(
    settings: Settings, ledgers: Optional[LedgerRegistry] = None
) -> MerchantContainer:
    """Wire the merchant service from settings.

    Without ``MERCHANT_DATABASE_URL`` consumed proofs are kept in process
    memory, which is only correct with a single worker.
    """
    solana_keypair = load_keypair(settings.solana_private_key)
    if ledgers is None:
        ledgers = LedgerRegistry(
            [
                EvmLedger(settings.evm_rpc_url, settings.usdc_contract),
                SolanaLedger(settings.solana_rpc_url),
            ]
        )

    db_client: Optional[DatabaseClient] = None
    store: KeyValueStore
    if settings.database_url:
        db_client = DatabaseClient(settings)
        store = RedisKeyValueStore(db_client)
    else:
        store = InMemoryKeyValueStore()

    verifier = PaymentVerifier(
        ledgers,
        verify_on_chain=settings.verify_on_chain,
        max_attempts=settings.confirmation_attempts,
        interval=settings.confirmation_interval,
    )
    service = MerchantService(
        sessions=SessionStore(),
        verifier=verifier,
        proof_registry=ProofRegistryImpl(store),
        price_table=PriceTable(
            {EVM_NETWORK: settings.evm_price, SOLANA_NETWORK: settings.solana_price}
        ),
        offerings=build_offerings(settings, solana_keypair),
        default_network=settings.payment_network,
        solana_network=SOLANA_NETWORK,
        timeout_seconds=settings.payment_timeout_seconds,
    )
    return MerchantContainer(service=service, ledgers=ledgers, db_client=db_client)


def get_merchant_service(request: Request) -> MerchantService:
    """Get the merchant service built at application startup."""
    return request.app.state.container.service
