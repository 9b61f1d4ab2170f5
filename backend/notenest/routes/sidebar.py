"""
NoteNest Backend — Sidebar Routes
==================================

What:  GET /api/sidebar renders the recursive document tree for the caller;
       WS /ws/sidebar streams live sidebar snapshots.

Expansion state travels with each request (`?expanded=<id>&expanded=<id>`);
the server keeps none of it between requests.

WebSocket Protocol (client → server):
    {"type": "subscribe",   "parent_document": "<uuid>" | null}
    {"type": "unsubscribe", "parent_document": "<uuid>" | null}
Malformed messages get {"type": "error", "message": "..."} and the
connection stays open.
"""

import json
import logging
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from notenest.config import settings
from notenest.database import get_db_session
from notenest.dependencies import get_current_user
from notenest.schemas.views import SidebarResponse
from notenest.services.document_service import document_service
from notenest.services.live_query import SidebarHub, sidebar_hub
from notenest.views.sidebar import DocumentList

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sidebar"])


@router.get(
    "/api/sidebar",
    response_model=SidebarResponse,
    summary="Rendered sidebar tree",
    description=(
        "Root documents of the caller, with the children of every id listed in "
        "`expanded` rendered recursively."
    ),
)
async def get_sidebar_tree(
    expanded: List[UUID] = Query(default=[]),
    active: Optional[UUID] = Query(default=None, description="Currently open document"),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SidebarResponse:
    async def fetch(parent_document_id: Optional[UUID]):
        return await document_service.get_sidebar(db, user_id, parent_document_id)

    sidebar = DocumentList(fetch, expanded={str(i): True for i in expanded})
    return SidebarResponse(documents=await sidebar.render(active_id=active))


def _parent_from(message: Any) -> Optional[UUID]:
    """Parse the parent id of a subscribe/unsubscribe message (ValueError if bad)."""
    raw = message.get("parent_document")
    return UUID(str(raw)) if raw else None


async def _serve(websocket: WebSocket, hub: SidebarHub) -> None:
    while True:
        raw = await websocket.receive_text()
        try:
            message = json.loads(raw)
            kind = message.get("type") if isinstance(message, dict) else None
            if kind not in ("subscribe", "unsubscribe"):
                raise ValueError(f"Unknown message type: {kind!r}")
            parent_id = _parent_from(message)
        except ValueError as e:
            await websocket.send_json({"type": "error", "message": str(e)})
            continue

        if kind == "subscribe":
            await hub.subscribe(websocket, parent_id)
        else:
            hub.unsubscribe(websocket, parent_id)


@router.websocket("/ws/sidebar")
async def sidebar_updates(websocket: WebSocket) -> None:
    """
    Live sidebar subscription.

    Browsers cannot set headers on WebSocket requests, so the user id is
    also accepted as the `user` query parameter.
    """
    user_id = (
        websocket.headers.get(settings.user_header)
        or websocket.query_params.get("user")
        or ""
    ).strip()
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await sidebar_hub.connect(websocket, user_id)
    try:
        await _serve(websocket, sidebar_hub)
    except WebSocketDisconnect:
        pass
    finally:
        sidebar_hub.disconnect(websocket)
