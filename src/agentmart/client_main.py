"""Scripted purchase: the client agent buys a banana from a running merchant."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .application.client.agent import ClientAgent
from .application.client.use_cases.payment_signer import PaymentSigner
from .application.shared.transfer import TransferExecutor
from .domain.errors import LedgerError
from .envs.client_env import Settings, get_settings
from .infrastructure.ledgers.evm_ledger import EvmLedger, load_account
from .infrastructure.ledgers.solana_ledger import (
    SIGNATURE_FEE_LAMPORTS,
    SolanaLedger,
    load_keypair,
)
from .infrastructure.merchant.merchant_client_async import MerchantClientAsync

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AgentMart demo purchase")
    parser.add_argument(
        "--network",
        choices=["solana", "evm"],
        default=None,
        help="Pay with SOL on Solana devnet or USDC on Base Sepolia "
        "(defaults to PAYMENT_NETWORK)",
    )
    parser.add_argument(
        "--mode",
        choices=["transfer", "authorize"],
        default="transfer",
        help="Move funds on-chain, or only sign a payment authorization",
    )
    parser.add_argument("--product", default="banana")
    return parser.parse_args(argv)


def _build_signers(settings: Settings) -> list[PaymentSigner]:
    evm = EvmLedger(settings.evm_rpc_url, settings.usdc_contract)
    solana = SolanaLedger(settings.solana_rpc_url)
    return [
        PaymentSigner(evm, load_account(settings.evm_private_key), TransferExecutor(evm)),
        PaymentSigner(
            solana, load_keypair(settings.solana_private_key), TransferExecutor(solana)
        ),
    ]


async def _fund_if_short(agent: ClientAgent) -> None:
    requirement = agent.session.pending_requirement
    if requirement is None:
        return
    signer = agent.signers.get(requirement.network)
    if signer is None or requirement.network != agent.faucet_network:
        return
    try:
        balance = await signer.ledger.get_balance(signer.address)
    except LedgerError as e:
        logger.warning("Could not read balance before paying: %s", e)
        return
    if balance < requirement.required_amount + SIGNATURE_FEE_LAMPORTS:
        print("\n> Balance is short, requesting an airdrop")
        print(await agent.request_airdrop())


async def run(args: argparse.Namespace, settings: Settings) -> int:
    signers = _build_signers(settings)
    async with MerchantClientAsync(settings.merchant_base_url) as merchant:
        agent = ClientAgent(merchant, signers)
        try:
            print("> wallet info")
            print(await agent.wallet_info())

            request = f"I want to buy a {args.product}"
            if args.network == "solana":
                request += " with Solana"
            print(f"\n> {request}")
            print(await agent.send_message(request))
            if not agent.session.has_pending_payment:
                return 1

            await _fund_if_short(agent)

            print("\n> confirm")
            print(await agent.confirm_payment(mode=args.mode))
            return 0
        finally:
            await agent.close()
            for signer in signers:
                await signer.ledger.aclose()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the client demo."""
    args = _parse_args(argv)
    settings = get_settings()
    if args.network is None:
        args.network = "evm" if settings.payment_network == "base-sepolia" else "solana"

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Starting AgentMart client demo")
    print(f"Merchant: {settings.merchant_base_url}")
    print(f"Network: {args.network} ({args.mode})")

    sys.exit(asyncio.run(run(args, settings)))


if __name__ == "__main__":
    main()
