"""Checkout API: preview and convert the caller's cart."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, get_current_actor
from src.mp_order.application.conversion import OrderConversionService
from src.mp_order.application.schemas import (
    CheckoutPreviewResponse,
    CheckoutRequest,
    OrderResponse,
)

router = APIRouter(prefix="/checkout", tags=["checkout"])

_service = OrderConversionService()


@router.post("/preview")
async def preview_checkout(
    body: CheckoutRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    plan = await _service.preview(db, actor.id, body.cart_id)
    return success_response(CheckoutPreviewResponse.from_plan(plan).model_dump(), request)


@router.post("/convert", status_code=status.HTTP_201_CREATED)
async def convert_cart(
    body: CheckoutRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    orders = await _service.convert(db, actor.id, body.cart_id, body.shipping_address)
    return success_response(
        {
            "group_id": orders[0].group_id if orders else None,
            "orders": [OrderResponse.from_domain(o).model_dump(mode="json") for o in orders],
        },
        request,
    )
