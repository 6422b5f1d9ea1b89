# src/mp_admin/api/router.py
"""Admin REST API: ledger reconciliation."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_admin.application.reconciliation import ReconciliationService
from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import Actor, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])
_service = ReconciliationService()


@router.post("/reconcile")
async def reconcile(
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.reconcile(db)
    return success_response(result, request)


@router.get("/wallets/{user_id}/verify")
async def verify_wallet(
    user_id: str,
    admin: Annotated[Actor, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.assert_wallet_consistent(db, user_id)
    return success_response({"user_id": user_id, "ok": True}, request)
