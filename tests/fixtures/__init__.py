"""Test doubles for ledgers and storage."""

from agentmart.infrastructure.storage import InMemoryKeyValueStore

from .fake_ledger import CONFIRMED, PENDING, FakeLedger, UnreachableLedger

__all__ = [
    "CONFIRMED",
    "PENDING",
    "FakeLedger",
    "InMemoryKeyValueStore",
    "UnreachableLedger",
]
