"""
NoteNest Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the document API contract.
How:   FastAPI validates request bodies against these models, serializes
       responses through them, and generates OpenAPI docs from them.

Schemas are kept separate from the SQLAlchemy model so the API exposes
exactly the fields listed here and nothing else.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Editor Content
# ══════════════════════════════════════════════════════════════════════════


class EditorBlock(BaseModel):
    """
    One block of the block-based rich-text editor.

    Only the envelope is checked (a typed object with optional nested
    children); block-specific props and inline content stay opaque.
    """
    id: Optional[str] = None
    type: str = Field(min_length=1)
    props: Dict[str, Any] = Field(default_factory=dict)
    content: Any = None
    children: List["EditorBlock"] = Field(default_factory=list)

    model_config = {"extra": "allow"}


BLOCK_LIST = TypeAdapter(List[EditorBlock])


def check_content(raw: str) -> List[Dict[str, Any]]:
    """
    Parse serialized editor content into a list of block dicts.

    Raises ValueError when the text is not JSON or not a list of blocks.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Content is not valid JSON: {e.msg}") from e
    if not isinstance(data, list):
        raise ValueError("Content must be a JSON array of blocks")
    BLOCK_LIST.validate_python(data)
    return data


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class DocumentCreate(BaseModel):
    """Body of POST /api/documents."""
    title: Optional[str] = Field(default=None, max_length=255)
    parent_document: Optional[uuid.UUID] = Field(
        default=None,
        description="Parent document id; omit to create a root document",
    )


class DocumentUpdate(BaseModel):
    """
    Body of PATCH /api/documents/{id}.

    Only fields present in the request are applied (exclude_unset).
    """
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    cover_image: Optional[str] = Field(default=None, max_length=1024)
    icon: Optional[str] = Field(default=None, max_length=64)
    is_published: Optional[bool] = None

    @field_validator("title", "is_published")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # May be omitted, but never cleared: both columns are NOT NULL
        if v is None:
            raise ValueError("Field may be omitted but not set to null")
        return v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            check_content(v)
        return v


class ContentUpdate(BaseModel):
    """Body of PUT /api/documents/{id}/content (editor autosave)."""
    content: str = Field(description="Serialized editor blocks (JSON array)")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class DocumentResponse(BaseModel):
    """Full representation of a document."""
    id: uuid.UUID
    title: str
    user_id: str
    is_archived: bool
    parent_document: Optional[uuid.UUID] = Field(
        default=None, validation_alias="parent_document_id"
    )
    content: Optional[str] = None
    cover_image: Optional[str] = None
    icon: Optional[str] = None
    is_published: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class DocumentListItem(BaseModel):
    """
    Compact representation for the sidebar, trash and search lists.

    Omits the content body, which can be large.
    """
    id: uuid.UUID
    title: str
    icon: Optional[str] = None
    parent_document: Optional[uuid.UUID] = Field(
        default=None, validation_alias="parent_document_id"
    )
    is_archived: bool
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "document with ID '...' was not found",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Upload storage: writable, unwritable")
    uptime_seconds: float = Field(description="Seconds since service started")
