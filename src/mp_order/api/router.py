"""mp_order REST API: order reads for buyers, vendors and admins."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, get_current_actor
from src.mp_order.application.schemas import OrderResponse, StatusHistoryResponse
from src.mp_order.application.service import OrderQueryService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderQueryService()


@router.get("")
async def list_orders_by_group(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    group_id: str = Query(..., min_length=8, max_length=8),
) -> ApiResponse:
    orders = await _service.list_group(db, group_id, actor.id, actor.is_admin)
    return success_response(
        {"items": [OrderResponse.from_domain(o).model_dump(mode="json") for o in orders]},
        request,
    )


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    order = await _service.get_order(db, order_id, actor.id, actor.is_admin)
    return success_response(OrderResponse.from_domain(order).model_dump(mode="json"), request)


@router.get("/{order_id}/history")
async def get_order_history(
    order_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    entries = await _service.list_history(db, order_id, actor.id, actor.is_admin)
    return success_response(
        {"items": [StatusHistoryResponse.from_domain(e).model_dump(mode="json") for e in entries]},
        request,
    )
