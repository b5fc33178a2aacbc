"""FastAPI application configuration (Merchant API)."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from ...application.merchant.dtos import MerchantWalletDTO, MerchantWalletsDTO
from ...domain.ledger import LedgerRegistry
from ...envs.merchant_env import Settings, get_settings
from .dependencies import build_container
from .routers import payments, sessions

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    ledgers: Optional[LedgerRegistry] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    ``ledgers`` replaces the RPC-backed ledger adapters, e.g. with fakes.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = build_container(settings, ledgers)
        app.state.container = container
        logger.info(
            "Merchant ready on networks %s (default %s)",
            ", ".join(container.ledgers.networks),
            settings.payment_network,
        )
        try:
            yield
        finally:
            await container.aclose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="AgentMart Merchant API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Include routers
    app.include_router(sessions.router, prefix="/api/v1/merchant")
    app.include_router(payments.router, prefix="/api/v1/merchant")
    app.mount("/metrics", make_asgi_app())

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/api/v1/merchant/wallets", response_model=MerchantWalletsDTO)
    async def get_wallets(request: Request) -> MerchantWalletsDTO:
        """Return the receiving address the merchant uses on each network."""
        offerings = request.app.state.container.service.offerings.values()
        return MerchantWalletsDTO(
            wallets=[
                MerchantWalletDTO(
                    network=offering.network,
                    address=offering.recipient_address,
                    asset=offering.asset,
                )
                for offering in offerings
            ]
        )

    return app
