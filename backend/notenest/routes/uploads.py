"""
NoteNest Backend — Upload Route Handlers
=========================================

What:  POST /api/uploads stores cover images and images dropped into the
       editor; GET /api/files/{path} serves them back.

Request Flow (upload):
    1. Client sends multipart/form-data with a 'file' field and, when
       replacing a cover, 'replace_target_url'
    2. FileService validates extension, size and MIME type, then stores
       under the uploader's directory
    3. The replaced file (if any) is removed when the same user uploaded it
    4. 201 Created with {"url": "/api/files/YYYY/MM/DD/<uuid>.<ext>"}
"""

import logging
import mimetypes
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse

from notenest.dependencies import get_current_user
from notenest.schemas.document import ErrorResponse
from notenest.schemas.views import UploadResponse
from notenest.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Uploads"])


@router.post(
    "/uploads",
    status_code=201,
    response_model=UploadResponse,
    responses={
        400: {"description": "Invalid file type or size", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
    },
    summary="Upload an image",
)
async def upload_file(
    file: UploadFile = File(..., description="Image file (png, jpg, jpeg, gif, webp)"),
    replace_target_url: Optional[str] = Form(
        default=None, description="URL of a previous upload to replace"
    ),
    user_id: str = Depends(get_current_user),
) -> UploadResponse:
    content = await file.read()
    logger.info(
        "Upload from %s: filename=%s, size=%d bytes",
        user_id,
        file.filename or "unknown",
        len(content),
    )
    try:
        url = await file_service.upload(
            filename=file.filename or "upload.png",
            content=content,
            owner=user_id,
            content_length=file.size,
            replace_target_url=replace_target_url,
        )
        return UploadResponse(url=url)
    finally:
        await file.close()


@router.get(
    "/files/{file_path:path}",
    summary="Serve an uploaded file",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)
    media_type = mimetypes.guess_type(full_path.name)[0] or "application/octet-stream"
    return FileResponse(
        path=str(full_path),
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
