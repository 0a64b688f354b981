"""
FastAPI Application

Read-only query API over a ProofClient.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.deps import load_config
from api.errors import APIError, api_error_handler, generic_error_handler, proof_error_handler
from api.routes import health, records
from core.schemas.errors import ProofException
from orchestrator.pipeline import ProofClient, create_client


def _resolve_log_level() -> int:
    """Resolve log level from PROOF_LOG_LEVEL, defaulting to INFO."""
    raw = os.getenv("PROOF_LOG_LEVEL")
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app(client: Optional[ProofClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Without a client, one is built from configuration (YAML file plus
    environment) when the app starts and closed when it shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = None
        if getattr(app.state, "proof_client", None) is None:
            owned = create_client(load_config())
            app.state.proof_client = owned
        try:
            yield
        finally:
            if owned is not None:
                await owned.close()

    app = FastAPI(
        title="Proof Anchor API",
        description="""
Query API for API calls anchored on the PROOF registry.

## Endpoints

- **GET /records/{record_id}** - Verify an anchored record
- **GET /stats** - Registry and account statistics
- **GET /pricing** - Current record pricing
- **GET /balance** - Token and native balances of the signer
- **GET /health** - Health check
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.proof_client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(ProofException, proof_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(records.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
