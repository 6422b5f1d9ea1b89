"""mp_invoice REST API.

/invoices/by-token/{token} is the public share link and needs no Bearer token;
the access token itself is the credential.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.errors import ForbiddenError
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, get_current_actor
from src.mp_invoice.application.schemas import InvoiceResponse
from src.mp_invoice.application.service import InvoiceService
from src.mp_order.application.service import OrderQueryService

router = APIRouter(tags=["invoices"])

_service = InvoiceService()
_orders = OrderQueryService()


@router.get("/invoices/by-token/{token}")
async def get_invoice_by_token(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    invoice = await _service.get_by_token(db, token)
    return success_response(InvoiceResponse.from_domain(invoice).model_dump(mode="json"), request)


@router.get("/invoices/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    invoice = await _service.get(db, invoice_id)
    if not actor.is_admin and actor.id not in (invoice.buyer_id, invoice.vendor_id):
        raise ForbiddenError("Not a party to this invoice")
    return success_response(InvoiceResponse.from_domain(invoice).model_dump(mode="json"), request)


@router.get("/orders/{order_id}/invoices")
async def list_order_invoices(
    order_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    order = await _orders.get_order(db, order_id, actor.id, actor.is_admin)
    invoices = await _service.list_for_order(db, order)
    if not actor.is_admin:
        invoices = [i for i in invoices if actor.id in (i.buyer_id, i.vendor_id)]
    return success_response(
        {"items": [InvoiceResponse.from_domain(i).model_dump(mode="json") for i in invoices]},
        request,
    )
