from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator


class Settings(BaseModel):
    merchant_base_url: str = "http://localhost:10000/api/v1"
    payment_network: str = "solana-devnet"
    solana_rpc_url: str = "https://api.devnet.solana.com"
    evm_rpc_url: str = "https://sepolia.base.org"
    usdc_contract: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
    solana_private_key: Optional[str] = None
    evm_private_key: Optional[str] = None

    @field_validator("merchant_base_url")
    @classmethod
    def validate_merchant_base_url(cls, v: str) -> str:
        if not v:
            raise ValueError("Merchant base URL cannot be empty")
        parsed = urlparse(v)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("Merchant base URL must start with http:// or https://")
        if not parsed.netloc:
            raise ValueError("Merchant base URL must include a host")
        return v


def get_settings() -> Settings:
    values = {
        "merchant_base_url": os.environ.get("MERCHANT_BASE_URL"),
        "payment_network": os.environ.get("PAYMENT_NETWORK"),
        "solana_rpc_url": os.environ.get("SOLANA_RPC_URL"),
        "evm_rpc_url": os.environ.get("EVM_RPC_URL"),
        "usdc_contract": os.environ.get("USDC_CONTRACT"),
        "solana_private_key": os.environ.get("CLIENT_SOLANA_PRIVATE_KEY"),
        "evm_private_key": os.environ.get("CLIENT_EVM_PRIVATE_KEY"),
    }
    return Settings(**{k: v for k, v in values.items() if v is not None})
