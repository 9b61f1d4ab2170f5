"""
NoteNest Backend — Live Sidebar Subscriptions
==============================================

What:  Re-delivers sidebar query results to connected WebSocket clients
       whenever the owning user changes a document.
How:   Each connection subscribes to one or more parent ids. A mutation route
       commits, then schedules publish(user_id) as a background task; a
       fresh session reads the committed state and every subscription of
       that user receives a new snapshot.
Who:   The /ws/sidebar route (subscribe/unsubscribe) and the document routes
       (publish after mutations).

Message Format (server → client):
    {"type": "sidebar", "parent_document": "<uuid>|null", "documents": [...]}

Single-process only: subscriptions live in memory of one worker.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from uuid import UUID

from starlette.websockets import WebSocket, WebSocketDisconnect

from notenest.database import async_session_factory
from notenest.schemas.document import DocumentListItem
from notenest.services.document_service import document_service

logger = logging.getLogger(__name__)

SidebarFetch = Callable[[str, Optional[UUID]], Awaitable[List[DocumentListItem]]]


async def fetch_sidebar(user_id: str, parent_document_id: Optional[UUID]) -> List[DocumentListItem]:
    """Run the sidebar query in its own short-lived session."""
    async with async_session_factory() as session:
        return await document_service.get_sidebar(session, user_id, parent_document_id)


@dataclass
class Subscriber:
    user_id: str
    parents: Set[Optional[UUID]] = field(default_factory=set)


class SidebarHub:
    """In-memory registry of live sidebar subscriptions."""

    def __init__(self, fetch: SidebarFetch = fetch_sidebar):
        self._fetch = fetch
        self._subscribers: Dict[WebSocket, Subscriber] = {}

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)

    def subscriptions(self, websocket: WebSocket) -> Set[Optional[UUID]]:
        subscriber = self._subscribers.get(websocket)
        return set(subscriber.parents) if subscriber else set()

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        await websocket.accept()
        self._subscribers[websocket] = Subscriber(user_id=user_id)
        logger.info("Sidebar subscriber connected for user %s", user_id)

    def disconnect(self, websocket: WebSocket) -> None:
        subscriber = self._subscribers.pop(websocket, None)
        if subscriber:
            logger.info("Sidebar subscriber disconnected for user %s", subscriber.user_id)

    async def subscribe(self, websocket: WebSocket, parent_document_id: Optional[UUID]) -> None:
        """Register interest in one parent and send its current snapshot."""
        subscriber = self._subscribers.get(websocket)
        if subscriber is None:
            return
        subscriber.parents.add(parent_document_id)
        await self._push(websocket, subscriber.user_id, parent_document_id)

    def unsubscribe(self, websocket: WebSocket, parent_document_id: Optional[UUID]) -> None:
        subscriber = self._subscribers.get(websocket)
        if subscriber:
            subscriber.parents.discard(parent_document_id)

    async def publish(self, user_id: str) -> int:
        """
        Send fresh snapshots to every subscription of `user_id`.

        Returns the number of snapshots delivered.
        """
        targets = [
            (ws, sub) for ws, sub in list(self._subscribers.items()) if sub.user_id == user_id
        ]
        delivered = 0
        for websocket, subscriber in targets:
            for parent_id in list(subscriber.parents):
                if not await self._push(websocket, user_id, parent_id):
                    break
                delivered += 1
        if delivered:
            logger.debug("Published %d sidebar snapshots for user %s", delivered, user_id)
        return delivered

    async def _push(
        self, websocket: WebSocket, user_id: str, parent_document_id: Optional[UUID]
    ) -> bool:
        documents = await self._fetch(user_id, parent_document_id)
        payload: Dict[str, Any] = {
            "type": "sidebar",
            "parent_document": str(parent_document_id) if parent_document_id else None,
            "documents": [d.model_dump(mode="json") for d in documents],
        }
        try:
            await websocket.send_json(payload)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # Socket closed underneath us; drop the subscriber
            logger.info("Dropping sidebar subscriber for user %s: %s", user_id, str(e))
            self.disconnect(websocket)
            return False
        return True


sidebar_hub = SidebarHub()
