"""Deterministic parsing of shopper messages into merchant intents."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional

IntentKind = Literal["buy", "order_status", "help"]

_BUY_RE = re.compile(
    r"\b(?:buy|purchase|get)\b\s*(?:me\b\s*)?(?:(?:an?|some|the)\b\s*)?(?P<product>.*)",
    re.IGNORECASE,
)
_PAY_WITH_RE = re.compile(
    r"\s+(?:with|using|in|via|on)\s+(?P<method>solana|sol|usdc|ethereum|eth|base)\b.*$",
    re.IGNORECASE,
)
_SOLANA_RE = re.compile(r"\b(?:solana|sol)\b", re.IGNORECASE)
_STATUS_RE = re.compile(r"\border\s+status\b|\bstatus\s+of\s+my\s+order\b", re.IGNORECASE)


@dataclass(frozen=True)
class Intent:
    kind: IntentKind
    product: Optional[str] = None
    wants_solana: bool = False


def parse_intent(text: str) -> Intent:
    """Map a free-text message to an intent.

    "I want to buy a banana" -> buy banana (default ledger);
    "buy a banana with Solana" -> buy banana on Solana;
    "order status" -> order_status; anything else -> help.
    An empty product after the verb yields a buy intent with product "".
    """
    text = text.strip()
    wants_solana = bool(_SOLANA_RE.search(text))

    if _STATUS_RE.search(text):
        return Intent(kind="order_status")

    match = _BUY_RE.search(text)
    if match:
        product = _PAY_WITH_RE.sub("", match.group("product"))
        product = product.strip().rstrip(".!?").strip()
        return Intent(kind="buy", product=product, wants_solana=wants_solana)

    return Intent(kind="help", wants_solana=wants_solana)
