"""
NoteNest Backend — Editor Wrapper
==================================

What:  Server-side counterpart of the block editor: loads serialized content,
       validates block structure, forwards the serialized document to change
       listeners and routes image uploads to the file service.
How:   Blocks are kept as plain dicts; only their envelope is validated
       (see schemas.document.EditorBlock). Serialization is JSON indented by
       two spaces, matching what the browser editor emits.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from notenest.exceptions import ValidationError
from notenest.schemas.document import check_content

logger = logging.getLogger(__name__)

Block = Dict[str, Any]
ChangeListener = Callable[[str], None]


class Uploader(Protocol):
    async def upload(
        self,
        filename: str,
        content: bytes,
        owner: str,
        content_length: Optional[int] = None,
        replace_target_url: Optional[str] = None,
    ) -> str: ...


def parse_content(raw: Optional[str]) -> List[Block]:
    """
    Parse serialized editor content. Empty or missing content is an empty
    document.

    Raises ValidationError (400) for malformed content.
    """
    if not raw:
        return []
    try:
        return check_content(raw)
    except (ValueError, PydanticValidationError) as e:
        raise ValidationError(
            message="Document content is not a valid list of editor blocks.",
            field="content",
            context={"reason": str(e)},
        )


def serialize(blocks: List[Block]) -> str:
    return json.dumps(blocks, indent=2)


class Editor:
    """
    Args:
        initial_content: serialized blocks as stored on the document
        editable:        read-only editors reject replace()
        uploader:        object with an async upload(); usually file_service
        owner:           user id uploads are stored for
    """

    def __init__(
        self,
        initial_content: Optional[str] = None,
        editable: bool = True,
        uploader: Optional[Uploader] = None,
        owner: Optional[str] = None,
    ):
        self.document: List[Block] = parse_content(initial_content)
        self.editable = editable
        self.uploader = uploader
        self.owner = owner
        self._listeners: List[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def serialize(self) -> str:
        return serialize(self.document)

    def replace(self, blocks: List[Block]) -> str:
        """
        Replace the document and notify every listener with the serialized
        result, which is also returned.
        """
        if not self.editable:
            raise ValidationError(message="This document is read-only.", field="content")
        self.document = parse_content(json.dumps(blocks))
        serialized = self.serialize()
        for listener in self._listeners:
            listener(serialized)
        return serialized

    def load(self, raw: str) -> str:
        """Replace the document from serialized content."""
        return self.replace(parse_content(raw))

    async def upload_file(self, filename: str, content: bytes) -> str:
        """Store an image inserted in the editor and return its URL."""
        if self.uploader is None or self.owner is None:
            raise ValidationError(message="Uploads are not available in this editor.", field="file")
        url = await self.uploader.upload(filename=filename, content=content, owner=self.owner)
        logger.info("Editor upload stored at %s", url)
        return url
