"""mp_wallet REST API: balance and ledger history of the calling actor."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.enums import LedgerCategory
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, get_current_actor
from src.mp_wallet.application.service import WalletApplicationService

router = APIRouter(prefix="/wallet", tags=["wallet"])

_service = WalletApplicationService()


@router.get("/balance")
async def get_balance(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, actor.id)
    return success_response(data.model_dump(), request)


@router.get("/ledger")
async def list_ledger(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    category: LedgerCategory | None = Query(None, description="Filter by category"),
) -> ApiResponse:
    data = await _service.list_ledger(
        db, actor.id, cursor, limit, category.value if category else None
    )
    return success_response(data.model_dump(), request)
