"""
NoteNest Backend — Document Service (Business Logic)
=====================================================

What:  Queries and lifecycle mutations of the document tree.
How:   Stateless service; every method receives the request's AsyncSession.
       Changes are flushed here and committed by get_db_session().
Who:   Called by the document, sidebar and banner routes, the sidebar view
       and the live query hub.

Document Lifecycle:
    create ──▶ update* ──▶ archive ──▶ restore ──▶ ...
                              │
                              └──▶ remove (permanent)

    archive:  the document and every descendant are flagged archived
    restore:  the document and every descendant are unflagged; if the parent
              is still archived the document is detached to the root
    remove:   the document and every descendant are deleted

Access Rules:
    - Every mutation requires the caller to own the document.
    - get_by_id also serves published, non-archived documents to anyone.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notenest.config import settings
from notenest.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
)
from notenest.models.document import Document
from notenest.schemas.document import (
    DocumentListItem,
    DocumentResponse,
    DocumentUpdate,
)
from notenest.services.file_service import file_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _wraps_db_errors(action: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Translate SQLAlchemy failures into DatabaseError.

    Application errors (NotFoundError, ForbiddenError, ...) propagate as-is.
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await fn(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
                raise DatabaseError(
                    message=f"Could not {action}. Please try again.",
                    context={"error_type": type(e).__name__},
                )

        return wrapper

    return decorator


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise UnauthenticatedError()
    return user_id


class DocumentService:
    """
    Business logic layer for document operations.

    Queries:   get_sidebar, get_trash, get_search, get_by_id
    Mutations: create, update, archive, restore, remove,
               remove_icon, remove_cover_image
    """

    # ── Internal helpers ──────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, document_id: UUID) -> Document:
        result = await db.execute(select(Document).where(Document.id == document_id))
        document = result.scalar_one_or_none()
        if document is None:
            raise NotFoundError(resource="document", resource_id=str(document_id))
        return document

    async def _get_owned(
        self, db: AsyncSession, user_id: Optional[str], document_id: UUID
    ) -> Document:
        user_id = _require_user(user_id)
        document = await self._load(db, document_id)
        if document.user_id != user_id:
            raise ForbiddenError(context={"document_id": str(document_id)})
        return document

    async def _descendants(
        self, db: AsyncSession, user_id: str, document_id: UUID
    ) -> List[Document]:
        """Every document below document_id, walked one tree level per query."""
        found: List[Document] = []
        frontier = [document_id]
        while frontier:
            result = await db.execute(
                select(Document).where(
                    Document.user_id == user_id,
                    Document.parent_document_id.in_(frontier),
                )
            )
            children = list(result.scalars().all())
            found.extend(children)
            frontier = [child.id for child in children]
        return found

    # ── Queries ───────────────────────────────────────────────────────────

    @_wraps_db_errors("load the sidebar")
    async def get_sidebar(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        parent_document_id: Optional[UUID] = None,
    ) -> List[DocumentListItem]:
        """
        Non-archived children of a parent (root documents when None),
        newest first.
        """
        user_id = _require_user(user_id)
        if parent_document_id is None:
            parent_clause = Document.parent_document_id.is_(None)
        else:
            parent_clause = Document.parent_document_id == parent_document_id

        result = await db.execute(
            select(Document)
            .where(
                Document.user_id == user_id,
                parent_clause,
                Document.is_archived.is_(False),
            )
            .order_by(desc(Document.created_at))
        )
        return [DocumentListItem.model_validate(d) for d in result.scalars().all()]

    @_wraps_db_errors("load the trash")
    async def get_trash(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        search: Optional[str] = None,
    ) -> List[DocumentListItem]:
        """Archived documents, newest first, optionally filtered by title."""
        user_id = _require_user(user_id)
        query = select(Document).where(
            Document.user_id == user_id,
            Document.is_archived.is_(True),
        )
        if search:
            query = query.where(func.lower(Document.title).contains(search.lower()))
        result = await db.execute(query.order_by(desc(Document.created_at)))
        return [DocumentListItem.model_validate(d) for d in result.scalars().all()]

    @_wraps_db_errors("search documents")
    async def get_search(
        self, db: AsyncSession, user_id: Optional[str]
    ) -> List[DocumentListItem]:
        """Every non-archived document of the user, newest first."""
        user_id = _require_user(user_id)
        result = await db.execute(
            select(Document)
            .where(Document.user_id == user_id, Document.is_archived.is_(False))
            .order_by(desc(Document.created_at))
        )
        return [DocumentListItem.model_validate(d) for d in result.scalars().all()]

    @_wraps_db_errors("load the document")
    async def get_by_id(
        self,
        db: AsyncSession,
        document_id: UUID,
        user_id: Optional[str] = None,
    ) -> DocumentResponse:
        """
        Published, non-archived documents are public; everything else is
        visible to its owner only.

        Raises:
            NotFoundError:        no such document (→ 404)
            UnauthenticatedError: private document, anonymous caller (→ 401)
            ForbiddenError:       private document of another user (→ 403)
        """
        document = await self._load(db, document_id)
        if document.is_published and not document.is_archived:
            return DocumentResponse.model_validate(document)

        user_id = _require_user(user_id)
        if document.user_id != user_id:
            raise ForbiddenError(context={"document_id": str(document_id)})
        return DocumentResponse.model_validate(document)

    # ── Mutations ─────────────────────────────────────────────────────────

    @_wraps_db_errors("create the document")
    async def create(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        title: Optional[str] = None,
        parent_document_id: Optional[UUID] = None,
    ) -> DocumentResponse:
        """
        Create a document, optionally nested under a parent the user owns.
        """
        user_id = _require_user(user_id)
        if parent_document_id is not None:
            await self._get_owned(db, user_id, parent_document_id)

        document = Document(
            title=title or settings.default_document_title,
            user_id=user_id,
            parent_document_id=parent_document_id,
            is_archived=False,
            is_published=False,
        )
        db.add(document)
        await db.flush()
        logger.info("Document %s created (parent=%s)", document.id, parent_document_id)
        return DocumentResponse.model_validate(document)

    @_wraps_db_errors("update the document")
    async def update(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        document_id: UUID,
        changes: DocumentUpdate,
    ) -> DocumentResponse:
        """Apply the fields present in `changes`; absent fields stay untouched."""
        document = await self._get_owned(db, user_id, document_id)
        fields = changes.model_dump(exclude_unset=True)
        for name, value in fields.items():
            setattr(document, name, value)
        await db.flush()
        logger.debug("Document %s updated: %s", document_id, sorted(fields))
        return DocumentResponse.model_validate(document)

    @_wraps_db_errors("move the document to the trash")
    async def archive(
        self, db: AsyncSession, user_id: Optional[str], document_id: UUID
    ) -> DocumentResponse:
        """Archive the document together with its whole subtree."""
        document = await self._get_owned(db, user_id, document_id)
        descendants = await self._descendants(db, document.user_id, document.id)

        document.is_archived = True
        for child in descendants:
            child.is_archived = True
        await db.flush()

        logger.info("Document %s archived with %d descendants", document_id, len(descendants))
        return DocumentResponse.model_validate(document)

    @_wraps_db_errors("restore the document")
    async def restore(
        self, db: AsyncSession, user_id: Optional[str], document_id: UUID
    ) -> DocumentResponse:
        """
        Restore the document and its whole subtree.

        A document whose parent is still in the trash is moved to the root
        so it shows up in the sidebar again.
        """
        document = await self._get_owned(db, user_id, document_id)

        if document.parent_document_id is not None:
            result = await db.execute(
                select(Document).where(Document.id == document.parent_document_id)
            )
            parent = result.scalar_one_or_none()
            if parent is None or parent.is_archived:
                logger.info(
                    "Detaching document %s from archived parent %s",
                    document_id,
                    document.parent_document_id,
                )
                document.parent_document_id = None

        descendants = await self._descendants(db, document.user_id, document.id)
        document.is_archived = False
        for child in descendants:
            child.is_archived = False
        await db.flush()

        logger.info("Document %s restored with %d descendants", document_id, len(descendants))
        return DocumentResponse.model_validate(document)

    @_wraps_db_errors("delete the document")
    async def remove(
        self, db: AsyncSession, user_id: Optional[str], document_id: UUID
    ) -> DocumentResponse:
        """
        Permanently delete the document and its whole subtree.

        Cover images the owner uploaded are cleaned up afterwards;
        cleanup failures are logged and do not fail the removal.
        """
        document = await self._get_owned(db, user_id, document_id)
        descendants = await self._descendants(db, document.user_id, document.id)
        removed = DocumentResponse.model_validate(document)

        doomed = [document, *descendants]
        covers = [d.cover_image for d in doomed if d.cover_image]
        await db.execute(
            delete(Document)
            .where(Document.id.in_([d.id for d in doomed]))
            .execution_options(synchronize_session=False)
        )
        for d in doomed:
            db.expunge(d)
        await db.flush()

        for url in covers:
            await file_service.delete_by_url(url, document.user_id)

        logger.info("Document %s removed with %d descendants", document_id, len(descendants))
        return removed

    @_wraps_db_errors("remove the icon")
    async def remove_icon(
        self, db: AsyncSession, user_id: Optional[str], document_id: UUID
    ) -> DocumentResponse:
        document = await self._get_owned(db, user_id, document_id)
        document.icon = None
        await db.flush()
        return DocumentResponse.model_validate(document)

    @_wraps_db_errors("remove the cover image")
    async def remove_cover_image(
        self, db: AsyncSession, user_id: Optional[str], document_id: UUID
    ) -> DocumentResponse:
        document = await self._get_owned(db, user_id, document_id)
        cover = document.cover_image
        document.cover_image = None
        await db.flush()
        if cover:
            await file_service.delete_by_url(cover, document.user_id)
        return DocumentResponse.model_validate(document)


document_service = DocumentService()
