"""
NoteNest Backend — Recursive Sidebar Document List
===================================================

What:  Renders the user's document tree for the sidebar.
How:   DocumentList queries the non-archived children of one parent and, for
       every expanded child, renders the next level with the same expansion
       state. The expansion state is a plain dict of document id → bool that
       lives only as long as the DocumentList instance; it is never persisted.

Example (expanded = {A}):
    A            level 0, expanded
    ├── A.1      level 1
    └── A.2      level 1
    B            level 0, collapsed
"""

from typing import Awaitable, Callable, Dict, List, Optional, Union
from uuid import UUID

from notenest.schemas.document import DocumentListItem
from notenest.schemas.views import EmptyMarker, SidebarItem

ChildrenFetch = Callable[[Optional[UUID]], Awaitable[List[DocumentListItem]]]

# Indentation of nested rows, in pixels
LEVEL_INDENT = 12
EMPTY_MARKER_OFFSET = 25


def document_href(document_id: Union[UUID, str]) -> str:
    return f"/documents/{document_id}"


class DocumentList:
    """
    One sidebar instance.

    Args:
        fetch:    the sidebar query, bound to the current user and session
        expanded: initial expansion state; ids not present are collapsed
    """

    def __init__(self, fetch: ChildrenFetch, expanded: Optional[Dict[str, bool]] = None):
        self.fetch = fetch
        self.expanded: Dict[str, bool] = dict(expanded or {})

    def on_expand(self, document_id: Union[UUID, str]) -> bool:
        """Flip the expansion flag of one document and return the new value."""
        key = str(document_id)
        self.expanded[key] = not self.expanded.get(key, False)
        return self.expanded[key]

    def is_expanded(self, document_id: Union[UUID, str]) -> bool:
        return self.expanded.get(str(document_id), False)

    def on_redirect(self, document_id: Union[UUID, str]) -> str:
        """Navigation target when a row is clicked."""
        return document_href(document_id)

    async def render(
        self,
        parent_document_id: Optional[UUID] = None,
        level: int = 0,
        active_id: Optional[UUID] = None,
    ) -> List[SidebarItem]:
        documents = await self.fetch(parent_document_id)
        items: List[SidebarItem] = []
        for document in documents:
            expanded = self.is_expanded(document.id)
            item = SidebarItem(
                id=document.id,
                label=document.title,
                icon=document.icon,
                href=self.on_redirect(document.id),
                active=active_id is not None and document.id == active_id,
                level=level,
                expanded=expanded,
            )
            if expanded:
                item.children = await self.render(document.id, level + 1, active_id)
                if not item.children:
                    item.empty = EmptyMarker(
                        padding_left=(level + 1) * LEVEL_INDENT + EMPTY_MARKER_OFFSET
                    )
            items.append(item)
        return items
