"""
Health Check Route

Liveness endpoint; reports the configured network without touching the chain.
"""

from fastapi import APIRouter, Depends

from api.deps import get_client
from api.models.responses import HealthResponse
from orchestrator.pipeline import ProofClient


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(client: ProofClient = Depends(get_client)) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status for liveness probes.
    """
    return HealthResponse(
        ok=True,
        network=client.config.ledger.profile.label,
    )
