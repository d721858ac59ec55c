"""
Real-time WebSocket Endpoint
============================

``/ws?token=<jwt>`` authenticates with the same bearer token as the REST
API, then joins the caller's tenant room and personal room. Clients may
send ``{"event": "issue:subscribe", "issue_id": ...}`` or
``issue:unsubscribe`` to manage per-issue rooms. Issue rooms are keyed by
the caller's tenant, so subscribing to another tenant's issue id joins a
room nothing is ever published to.

Server-to-client messages are ``{"event": <name>, "data": <payload>}``.
"""

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core import ApplicationException
from src.infrastructure.database import get_session
from src.shared.infrastructure.logging import get_logger
from src.shared.infrastructure.notifications import issue_room, notification_hub, tenant_room, user_room
from src.tenancy.application import TenancyService
from src.tenancy.interfaces.dependencies import get_tenancy_service

logger = get_logger(__name__)
router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    token: str = Query(""),
    session: AsyncSession = Depends(get_session),
    tenancy: TenancyService = Depends(get_tenancy_service)
):
    try:
        actor = await tenancy.authenticate(
            token,
            websocket.client.host if websocket.client else None,
            websocket.headers.get("user-agent"),
        )
    except ApplicationException as e:
        logger.info("WebSocket authentication rejected", extra={"error": e.message})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        # Do not hold a pooled connection for the lifetime of the socket
        await session.close()

    await notification_hub.connect(websocket, [tenant_room(actor.tenant_id), user_room(actor.user_id)])
    logger.info("WebSocket connected", extra={"user_id": actor.user_id, "tenant_id": actor.tenant_id})

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue
            if not isinstance(message, dict) or not message.get("issue_id"):
                continue

            room = issue_room(actor.tenant_id, str(message["issue_id"]))
            if message.get("event") == "issue:subscribe":
                notification_hub.join(websocket, room)
            elif message.get("event") == "issue:unsubscribe":
                notification_hub.leave(websocket, room)
    except WebSocketDisconnect:
        pass
    finally:
        notification_hub.disconnect(websocket)
        logger.info("WebSocket disconnected", extra={"user_id": actor.user_id})


# Export router for inclusion in main app
websocket_router = router
