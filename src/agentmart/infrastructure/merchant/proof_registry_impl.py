"""Consumed-proof registry backed by the merchant key-value store."""

from __future__ import annotations

from typing import Optional

from ...domain.merchant import ProofRegistry
from ..storage import KeyValueStore


class ProofRegistryImpl(ProofRegistry):
    """Consumed-proof registry on top of a KeyValueStore (SET NX semantics).

    Proofs must already be in their ledger's canonical spelling.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: Optional[int] = None):
        self._store = store
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def _key(network: str, proof: str) -> str:
        return f"payment_proof:{network}:{proof}"

    async def claim(self, network: str, proof: str, session_id: str) -> bool:
        return await self._store.set_if_absent(
            self._key(network, proof), session_id, self._ttl_seconds
        )
