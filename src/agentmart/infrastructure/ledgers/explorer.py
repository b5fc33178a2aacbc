"""Block explorer links for the supported test networks."""

from __future__ import annotations

SOLANA_EXPLORER = "https://explorer.solana.com"
BASESCAN_SEPOLIA = "https://sepolia.basescan.org"


def _is_solana(network: str) -> bool:
    return network.startswith("solana")


def tx_url(network: str, reference: str) -> str:
    if _is_solana(network):
        return f"{SOLANA_EXPLORER}/tx/{reference}?cluster=devnet"
    return f"{BASESCAN_SEPOLIA}/tx/{reference}"


def address_url(network: str, address: str) -> str:
    if _is_solana(network):
        return f"{SOLANA_EXPLORER}/address/{address}?cluster=devnet"
    return f"{BASESCAN_SEPOLIA}/address/{address}"
