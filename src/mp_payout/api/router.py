"""mp_payout REST API: vendors request withdrawals, admins review them."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mp_common.database import get_db_session
from src.mp_common.enums import PayoutStatus
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, get_current_actor, require_admin
from src.mp_payout.application.schemas import (
    PayoutCreateRequest,
    PayoutPayRequest,
    PayoutResponse,
    PayoutReviewRequest,
)
from src.mp_payout.application.service import PayoutService
from src.mp_payout.domain.models import PayoutRequest

router = APIRouter(prefix="/payouts", tags=["payouts"])

_service = PayoutService()


def _dump(payout: PayoutRequest) -> dict[str, object]:
    return PayoutResponse.from_domain(payout, settings.CURRENCY).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED)
async def request_payout(
    body: PayoutCreateRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payout = await _service.request(db, actor.id, body.amount)
    return success_response(_dump(payout), request)


@router.get("")
async def list_payouts(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: PayoutStatus | None = Query(None, alias="status"),
    user_id: str | None = Query(None, description="Admin only: filter by user"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    owner = user_id if actor.is_admin else actor.id
    data = await _service.list_payouts(
        db, owner, status_filter.value if status_filter else None, cursor, limit
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{payout_id}")
async def get_payout(
    payout_id: int,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payout = await _service.get(db, payout_id, actor.id, actor.is_admin)
    return success_response(_dump(payout), request)


@router.post("/{payout_id}/approve")
async def approve_payout(
    payout_id: int,
    body: PayoutReviewRequest,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payout = await _service.approve(db, payout_id, admin.id, body.note)
    return success_response(_dump(payout), request)


@router.post("/{payout_id}/pay")
async def pay_payout(
    payout_id: int,
    body: PayoutPayRequest,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payout = await _service.pay(db, payout_id, admin.id, body.transaction_reference, body.note)
    return success_response(_dump(payout), request)


@router.post("/{payout_id}/reject")
async def reject_payout(
    payout_id: int,
    body: PayoutReviewRequest,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payout = await _service.reject(db, payout_id, admin.id, body.note)
    return success_response(_dump(payout), request)
