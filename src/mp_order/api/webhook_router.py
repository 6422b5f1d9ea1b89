"""Inbound webhooks from the payment gateway and the shipping carrier.

Both require the shared X-Webhook-Secret header and are rate limited per client IP.
A non-2xx response tells the sender to retry.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import verify_webhook_secret
from src.mp_order.application.events import EventResult, OrderEventService
from src.mp_order.application.schemas import (
    EventResultResponse,
    PaymentWebhookRequest,
    TrackingWebhookRequest,
)

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
    dependencies=[Depends(verify_webhook_secret)],
)

_service = OrderEventService()


def _to_response(result: EventResult) -> dict[str, object]:
    return EventResultResponse(
        group_id=result.group_id,
        order_ids=result.order_ids,
        applied=result.applied,
        skipped=result.skipped,
    ).model_dump()


@router.post("/payments")
async def payment_webhook(
    body: PaymentWebhookRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.handle_payment(db, body)
    return success_response(_to_response(result), request)


@router.post("/tracking")
async def tracking_webhook(
    body: TrackingWebhookRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.handle_tracking(db, body)
    return success_response(_to_response(result), request)
