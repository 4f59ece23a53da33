"""M-Pesa router: public gateway callback and authenticated STK push initiation."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import STK_INITIATE, require_capability
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .client import StkPushClient
from .schemas import CallbackAck, StkPushRequest, StkPushResponse
from . import service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mpesa", tags=["mpesa"])


def get_stk_client(request: Request) -> StkPushClient:
    return request.app.state.stk_client


@router.post("/callback", response_model=CallbackAck)
async def mpesa_callback(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CallbackAck:
    """Daraja STK/C2B confirmation. Always acknowledged."""
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Callback body is not JSON")
        payload = None
    await service.ingest_gateway_notification(db, payload)
    return CallbackAck()


@router.post("/stk-push", response_model=StkPushResponse)
async def initiate_stk_push(
    payload: StkPushRequest,
    db: AsyncSession = Depends(get_db),
    client: StkPushClient = Depends(get_stk_client),
    current_user: CurrentUser = Depends(require_capability(STK_INITIATE)),
) -> StkPushResponse:
    try:
        return await service.initiate_stk_push(db, client, current_user.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
