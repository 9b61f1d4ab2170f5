"""
NoteNest Backend — Document Route Handlers
===========================================

What:  CRUD, trash and banner endpoints for documents.
How:   Thin handlers: resolve identity, delegate to DocumentService or a
       view, schedule a live sidebar publish after every mutation.

Mutations commit before scheduling the publish (see _commit_and_publish),
so subscribers always receive the committed state.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notenest.database import get_db_session
from notenest.dependencies import get_current_user, get_optional_user
from notenest.exceptions import DatabaseError, ForbiddenError
from notenest.schemas.document import (
    ContentUpdate,
    DocumentCreate,
    DocumentListItem,
    DocumentResponse,
    DocumentUpdate,
    ErrorResponse,
)
from notenest.schemas.views import BannerActionResponse, BannerResponse
from notenest.services.document_service import document_service
from notenest.services.file_service import file_service
from notenest.services.live_query import sidebar_hub
from notenest.views.banner import BannerOutcome, TrashBanner
from notenest.views.editor import Editor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["Documents"])

_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not the owner", "model": ErrorResponse},
    404: {"description": "Document not found", "model": ErrorResponse},
}


# ── Queries ───────────────────────────────────────────────────────────────


@router.get(
    "/sidebar",
    response_model=List[DocumentListItem],
    summary="Children of a parent document",
)
async def get_sidebar(
    parent_document: Optional[UUID] = Query(
        default=None, description="Parent id; omit for root documents"
    ),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[DocumentListItem]:
    return await document_service.get_sidebar(db, user_id, parent_document)


@router.get("/trash", response_model=List[DocumentListItem], summary="Archived documents")
async def get_trash(
    search: Optional[str] = Query(default=None, max_length=255),
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[DocumentListItem]:
    return await document_service.get_trash(db, user_id, search)


@router.get("/search", response_model=List[DocumentListItem], summary="All active documents")
async def get_search(
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[DocumentListItem]:
    return await document_service.get_search(db, user_id)


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    responses=_ERRORS,
    summary="Get a document",
    description="Published documents are readable without authentication.",
)
async def get_document(
    document_id: UUID,
    user_id: Optional[str] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    return await document_service.get_by_id(db, document_id, user_id)


@router.get(
    "/{document_id}/banner",
    response_model=Optional[BannerResponse],
    responses=_ERRORS,
    summary="Trash banner for a document (null when not archived)",
)
async def get_banner(
    document_id: UUID,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[BannerResponse]:
    return await TrashBanner(db, user_id, document_id).load()


# ── Mutations ─────────────────────────────────────────────────────────────


async def _commit_and_publish(
    db: AsyncSession, background_tasks: BackgroundTasks, user_id: str
) -> None:
    """
    Commit the request transaction, then schedule a live sidebar publish.

    The publish runs in a fresh session, so it must not start before the
    commit; get_db_session() alone does not guarantee that ordering.
    """
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Commit failed for user %s: %s", user_id, str(e), exc_info=True)
        raise DatabaseError(
            message="Could not save your changes. Please try again.",
            context={"error_type": type(e).__name__},
        )
    background_tasks.add_task(sidebar_hub.publish, user_id)


@router.post("", status_code=201, response_model=DocumentResponse, responses=_ERRORS)
async def create_document(
    body: DocumentCreate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.create(
        db, user_id, title=body.title, parent_document_id=body.parent_document
    )
    await _commit_and_publish(db, background_tasks, user_id)
    return document


@router.patch("/{document_id}", response_model=DocumentResponse, responses=_ERRORS)
async def update_document(
    document_id: UUID,
    body: DocumentUpdate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.update(db, user_id, document_id, body)
    # Only title and icon are shown in the sidebar
    if body.model_fields_set & {"title", "icon"}:
        await _commit_and_publish(db, background_tasks, user_id)
    return document


@router.put(
    "/{document_id}/content",
    response_model=DocumentResponse,
    responses={**_ERRORS, 400: {"description": "Invalid content", "model": ErrorResponse}},
    summary="Save editor content",
)
async def save_content(
    document_id: UUID,
    body: ContentUpdate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    current = await document_service.get_by_id(db, document_id, user_id)
    # Published documents are readable by anyone, editable by the owner only
    if current.user_id != user_id:
        raise ForbiddenError(context={"document_id": str(document_id)})

    editor = Editor(initial_content=current.content, uploader=file_service, owner=user_id)
    serialized = editor.load(body.content)
    return await document_service.update(
        db, user_id, document_id, DocumentUpdate(content=serialized)
    )


@router.post("/{document_id}/archive", response_model=DocumentResponse, responses=_ERRORS)
async def archive_document(
    document_id: UUID,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.archive(db, user_id, document_id)
    await _commit_and_publish(db, background_tasks, user_id)
    return document


async def _banner_response(
    outcome: BannerOutcome,
    db: AsyncSession,
    background_tasks: BackgroundTasks,
    user_id: str,
) -> JSONResponse:
    if outcome.status_code < 400:
        await _commit_and_publish(db, background_tasks, user_id)
    return JSONResponse(
        status_code=outcome.status_code,
        content=outcome.response.model_dump(mode="json"),
        background=background_tasks,
    )


@router.post(
    "/{document_id}/restore",
    response_model=BannerActionResponse,
    responses=_ERRORS,
    summary="Banner action: restore from the trash",
)
async def restore_document(
    document_id: UUID,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    outcome = await TrashBanner(db, user_id, document_id).on_restore()
    return await _banner_response(outcome, db, background_tasks, user_id)


@router.delete(
    "/{document_id}",
    response_model=BannerActionResponse,
    responses=_ERRORS,
    summary="Banner action: delete forever",
)
async def remove_document(
    document_id: UUID,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    outcome = await TrashBanner(db, user_id, document_id).on_remove()
    return await _banner_response(outcome, db, background_tasks, user_id)


@router.delete("/{document_id}/icon", response_model=DocumentResponse, responses=_ERRORS)
async def remove_icon(
    document_id: UUID,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await document_service.remove_icon(db, user_id, document_id)
    await _commit_and_publish(db, background_tasks, user_id)
    return document


@router.delete("/{document_id}/cover-image", response_model=DocumentResponse, responses=_ERRORS)
async def remove_cover_image(
    document_id: UUID,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    return await document_service.remove_cover_image(db, user_id, document_id)
