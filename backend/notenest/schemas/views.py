"""
NoteNest Backend — Presentation Schemas
========================================

What:  Response models for the server-side views: trash banner, recursive
       sidebar, marketing heroes and editor uploads.
Who:   Returned by routes/sidebar.py, routes/documents.py (banner),
       routes/uploads.py and routes/marketing.py.
"""

import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# ── Notifications ─────────────────────────────────────────────────────────


class Notice(BaseModel):
    """Outcome of a tracked remote call, shown to the user as a toast."""
    status: Literal["success", "error"]
    message: str


class NoticeMessages(BaseModel):
    """The three toast texts attached to a tracked call."""
    loading: str
    success: str
    error: str


# ── Trash Banner ──────────────────────────────────────────────────────────


class BannerAction(BaseModel):
    label: str
    method: str
    href: str
    confirm: bool = Field(default=False, description="Requires a confirmation dialog")
    messages: NoticeMessages


class BannerResponse(BaseModel):
    """Banner shown on top of an archived document."""
    document_id: uuid.UUID
    message: str
    actions: List[BannerAction]


class BannerActionResponse(BaseModel):
    """Result of a banner button: a notification and an optional navigation."""
    notice: Notice
    redirect: Optional[str] = None


# ── Sidebar ───────────────────────────────────────────────────────────────


class EmptyMarker(BaseModel):
    """Placeholder rendered inside an expanded document without children."""
    label: str = "No pages inside"
    padding_left: int


class SidebarItem(BaseModel):
    id: uuid.UUID
    label: str
    icon: Optional[str] = Field(default=None, description="Document icon glyph")
    href: str
    active: bool
    level: int
    expanded: bool
    children: List["SidebarItem"] = Field(default_factory=list)
    empty: Optional[EmptyMarker] = None


class SidebarResponse(BaseModel):
    documents: List[SidebarItem]


# ── Editor Uploads ────────────────────────────────────────────────────────


class UploadResponse(BaseModel):
    url: str = Field(description="Public URL of the stored file")


# ── Marketing ─────────────────────────────────────────────────────────────


class HeroImage(BaseModel):
    src: str
    dark_src: str
    alt: str
    hide_on_mobile: bool = False


class HeroesResponse(BaseModel):
    images: List[HeroImage]
