"""
NoteNest Backend — Document SQLAlchemy Model
=============================================

What:  ORM model representing the `documents` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Used by DocumentService for every query and mutation.

Table Design:
    - UUID primary key, generated in Python so SQLite and PostgreSQL behave alike
    - parent_document_id: self-reference forming the document tree (NULL = root)
    - is_archived: trash flag; archived documents vanish from sidebar and search
    - content: JSON array of editor blocks, stored as text
    - cover_image / icon: optional page decorations
    - is_published: anyone may read a published, non-archived document

    Indexes mirror the two hot queries:
        idx_documents_user            → search and trash listings
        idx_documents_user_parent     → sidebar children of one parent
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from notenest.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """
    A node in a user's note tree.

    Lifecycle:
        1. Created (optionally under a parent) with title "Untitled"
        2. Edited: title, content, icon, cover image, published flag
        3. Archived: the document and its subtree move to the trash
        4. Restored: subtree leaves the trash; detached to the root when the
           parent is still archived
        5. Removed: the document and its subtree are deleted permanently
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Untitled")

    # Identity supplied by the auth gateway; opaque to this service
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    parent_document_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=True,
        default=None,
    )

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    cover_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True, default=None)
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, default=None)

    is_published: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    # ── Timestamps (UTC) ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_documents_user", "user_id"),
        Index("idx_documents_user_parent", "user_id", "parent_document_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Document(id={self.id}, title='{self.title}', "
            f"archived={self.is_archived}, parent={self.parent_document_id})>"
        )
