"""
Record and Account Routes

Read-only views of the registry: record verification, statistics,
pricing and the signer's balances.
"""

from fastapi import APIRouter, Depends

from api.deps import get_client
from api.errors import RecordNotFoundError
from api.models.responses import (
    BalanceResponse,
    PricingResponse,
    RecordResponse,
    StatsResponse,
)
from orchestrator.pipeline import ProofClient

router = APIRouter(tags=["records"])


@router.get("/records/{record_id}", response_model=RecordResponse)
async def get_record(record_id: str, client: ProofClient = Depends(get_client)) -> RecordResponse:
    """Verify a record on the registry; 404 when it does not exist."""
    record = await client.verify(record_id)
    if record is None:
        raise RecordNotFoundError(record_id)
    return RecordResponse(record=record)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(client: ProofClient = Depends(get_client)) -> StatsResponse:
    return StatsResponse(
        registry=await client.get_registry_statistics(),
        account=await client.get_statistics(),
    )


@router.get("/pricing", response_model=PricingResponse)
async def get_pricing(client: ProofClient = Depends(get_client)) -> PricingResponse:
    return PricingResponse(pricing=await client.get_pricing_info())


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(client: ProofClient = Depends(get_client)) -> BalanceResponse:
    return BalanceResponse(
        address=client.ledger.account_address,
        balance=await client.get_balance(),
    )
