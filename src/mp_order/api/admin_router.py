"""Admin order command: manual status update."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.errors import ValidationError
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, require_admin
from src.mp_order.application.events import OrderEventService
from src.mp_order.application.schemas import AdminOrderUpdateRequest, OrderResponse

router = APIRouter(prefix="/admin/orders", tags=["admin"])

_service = OrderEventService()


@router.patch("/{order_id}")
async def update_order(
    order_id: str,
    body: AdminOrderUpdateRequest,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    if body.model_dump(exclude_none=True, exclude={"note"}) == {}:
        raise ValidationError("Nothing to update")
    outcome = await _service.handle_admin_update(db, order_id, body, admin.id)
    return success_response(
        {
            "applied": outcome.applied,
            "effects": [e.value for e in outcome.effects],
            "order": OrderResponse.from_domain(outcome.order).model_dump(mode="json"),
        },
        request,
    )
