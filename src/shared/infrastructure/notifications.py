"""
Notification Fan-out
====================

Tenant-scoped publish/subscribe for real-time events.

Rooms are plain string keys (``tenant-<id>``, ``issue-<tenant id>-<id>``, ``user-<id>``).
WebSocket connections join rooms; services publish ``(room, event, payload)``
through the ``INotificationPublisher`` interface and never see the transport.

Publishing never raises: a dead connection is dropped from every room and
the failure is logged.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, Iterable, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def tenant_room(tenant_id: str) -> str:
    return f"tenant-{tenant_id}"


def issue_room(tenant_id: str, issue_id: str) -> str:
    # Keyed by tenant too, so a foreign subscriber can only join an empty room
    return f"issue-{tenant_id}-{issue_id}"


def user_room(user_id: str) -> str:
    return f"user-{user_id}"


class INotificationPublisher(ABC):
    """Outbound port used by application services."""

    @abstractmethod
    async def publish(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        """Broadcast ``event`` with ``payload`` to every subscriber of ``room``."""


class NotificationHub(INotificationPublisher):
    """
    In-process room registry backed by FastAPI WebSockets.

    Single-process only; a multi-worker deployment needs a shared broker
    behind the same interface.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._memberships: Dict[WebSocket, Set[str]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, rooms: Iterable[str]) -> None:
        await websocket.accept()
        for room in rooms:
            self.join(websocket, room)

    def join(self, websocket: WebSocket, room: str) -> None:
        self._rooms[room].add(websocket)
        self._memberships[websocket].add(room)

    def leave(self, websocket: WebSocket, room: str) -> None:
        self._rooms.get(room, set()).discard(websocket)
        self._memberships.get(websocket, set()).discard(room)
        if room in self._rooms and not self._rooms[room]:
            del self._rooms[room]

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self._memberships.pop(websocket, set())):
            self._rooms.get(room, set()).discard(websocket)
            if room in self._rooms and not self._rooms[room]:
                del self._rooms[room]

    def subscriber_count(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def publish(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        connections = list(self._rooms.get(room, ()))
        if not connections:
            return

        try:
            message = {"event": event, "data": jsonable_encoder(payload)}
        except Exception as e:
            logger.error(
                "Failed to encode notification",
                extra={"room": room, "event": event, "error": str(e)}
            )
            return

        disconnected = []
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(
                    "Dropping websocket after failed send",
                    extra={"room": room, "event": event, "error": str(e)}
                )
                disconnected.append(connection)

        for connection in disconnected:
            self.disconnect(connection)


# Process-wide hub shared by the WebSocket endpoint and the services
notification_hub = NotificationHub()


def get_notification_publisher() -> INotificationPublisher:
    """FastAPI dependency returning the process-wide hub."""
    return notification_hub
