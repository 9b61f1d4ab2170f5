"""
NoteNest Backend — Trash Banner
================================

What:  The banner shown on top of an archived document, with two actions:
       "Restore page" and "Delete forever" (behind a confirmation dialog).
How:   Each action issues exactly one service call, wrapped in track() so
       the outcome becomes a notification. Removing always navigates back to
       the documents home, whatever the outcome.
Who:   routes/documents.py (GET banner, POST restore, DELETE document).
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from notenest.exceptions import DatabaseError
from notenest.schemas.views import (
    BannerAction,
    BannerActionResponse,
    BannerResponse,
    NoticeMessages,
)
from notenest.services.document_service import DocumentService, document_service
from notenest.services.notifications import Tracked, track

logger = logging.getLogger(__name__)

TRASH_MESSAGE = "This page is in the Trash."
DOCUMENTS_HOME = "/documents"

RESTORE_MESSAGES = NoticeMessages(
    loading="Restoring note...",
    success="Note restored!",
    error="Failed to restore note.",
)
REMOVE_MESSAGES = NoticeMessages(
    loading="Deleting note...",
    success="Note deleted!",
    error="Failed to delete note.",
)


@dataclass
class BannerOutcome:
    response: BannerActionResponse
    status_code: int = 200


class TrashBanner:
    """Banner actions for one document, bound to the request's session and user."""

    def __init__(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        document_id: UUID,
        service: DocumentService = document_service,
    ):
        self.db = db
        self.user_id = user_id
        self.document_id = document_id
        self.service = service

    def describe(self) -> BannerResponse:
        base = f"/api/documents/{self.document_id}"
        return BannerResponse(
            document_id=self.document_id,
            message=TRASH_MESSAGE,
            actions=[
                BannerAction(
                    label="Restore page",
                    method="POST",
                    href=f"{base}/restore",
                    messages=RESTORE_MESSAGES,
                ),
                BannerAction(
                    label="Delete forever",
                    method="DELETE",
                    href=base,
                    confirm=True,
                    messages=REMOVE_MESSAGES,
                ),
            ],
        )

    async def load(self) -> Optional[BannerResponse]:
        """The banner for this document, or None when it is not in the trash."""
        document = await self.service.get_by_id(self.db, self.document_id, self.user_id)
        if not document.is_archived:
            return None
        return self.describe()

    async def on_restore(self) -> BannerOutcome:
        tracked = await track(
            self.service.restore(self.db, self.user_id, self.document_id),
            RESTORE_MESSAGES,
        )
        return await self._outcome(tracked, redirect=None)

    async def on_remove(self) -> BannerOutcome:
        tracked = await track(
            self.service.remove(self.db, self.user_id, self.document_id),
            REMOVE_MESSAGES,
        )
        return await self._outcome(tracked, redirect=DOCUMENTS_HOME)

    async def _outcome(self, tracked: Tracked, redirect: Optional[str]) -> BannerOutcome:
        status_code = 200
        if tracked.error is not None:
            status_code = tracked.error.status_code
            if isinstance(tracked.error, DatabaseError):
                await self.db.rollback()
        return BannerOutcome(
            response=BannerActionResponse(notice=tracked.notice, redirect=redirect),
            status_code=status_code,
        )
