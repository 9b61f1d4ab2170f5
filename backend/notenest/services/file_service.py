"""
NoteNest Backend — File Storage Service
========================================

What:  Upload validation, storage, public URLs, replacement and cleanup for
       cover images and images inserted in the editor.
How:   Validates extension, size and MIME type, stores files in
       per-uploader, date-organized directories under UUID names, and hands
       back a URL under `settings.files_url_prefix`. Only the uploader may
       replace or delete a stored file.
Who:   Called by the uploads route, the editor view and DocumentService
       (cover cleanup on removal).

Security Model:
    1. Extension check:   fast first filter
    2. Size check:        bounds memory use
    3. MIME type check:   python-magic inspects the file header bytes
    4. UUID filename:     no user input reaches the file system path
    5. Owner directory:   a hash of the uploader id; deletes stay inside it
    6. resolve():         served paths must stay inside the storage root
"""

import hashlib
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from notenest.config import settings
from notenest.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

_EXTENSION_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


class FileService:
    """
    Manages the upload → validate → store → serve → delete lifecycle.

    Directory Structure:
        storage/
        └── 3f2a9c1e5b7d4a60/          owner_key(user id)
            └── 2026/
                └── 10/
                    └── 19/
                        ├── a1b2c3d4-....png
                        └── e5f6g7h8-....jpg
    """

    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            url_prefix:   Override the public URL prefix.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.files_url_prefix).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Checks that the file extension is in the allowed list.

        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Checks the reported Content-Length first, then the actual byte count.
        Empty files are rejected as well.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=(
                    f"File is too large ({actual_size / (1024 * 1024):.1f}MB). "
                    f"Maximum size is {max_mb:.0f}MB."
                ),
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Determine the true file type from its header bytes.

        Returns the detected MIME type.
        Raises ValidationError if the type is not an allowed image.
        """
        try:
            import magic
            mime_type = magic.from_buffer(file_content, mime=True)
        except ImportError:
            # python-magic installed without libmagic (e.g. slim CI images)
            logger.warning(
                "python-magic not available, falling back to extension-based type detection. "
                "Install libmagic for production security."
            )
            mime_type = _EXTENSION_MIME.get(
                Path(filename).suffix.lower(), "application/octet-stream"
            )
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image."
                ),
                field="file",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    # ── Paths & URLs ──────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str, owner: str) -> Tuple[Path, str]:
        """Creates an <owner>/YYYY/MM/DD/<uuid>.<ext> path; returns (absolute, relative)."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{owner_key(owner)}/{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    def public_url(self, relative_path: str) -> str:
        return f"{self.url_prefix}/{relative_path}"

    def relative_path_from_url(self, url: Optional[str]) -> Optional[str]:
        """
        Map a public URL back to a storage-relative path.

        Returns None for URLs this service did not issue (external covers).
        """
        if not url:
            return None
        marker = f"{self.url_prefix}/"
        idx = url.find(marker)
        if idx == -1:
            return None
        return url[idx + len(marker):] or None

    def owns(self, relative_path: str, owner: str) -> bool:
        """True when the path lies inside the owner's upload directory."""
        full_path = (self.storage_root / relative_path).resolve()
        return full_path.is_relative_to(self.storage_root / owner_key(owner))

    def resolve(self, relative_path: str) -> Path:
        """
        Resolve a relative path inside the storage root.

        Raises:
            ValidationError: the path escapes the storage root (../ traversal)
            NotFoundError:   no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    # ── Storage ───────────────────────────────────────────────────────────

    async def store_file(self, content: bytes, extension: str, owner: str) -> Tuple[str, str]:
        """
        Write validated file content to disk with async I/O.

        Returns (absolute_path, relative_path).
        Raises FileStorageError if directory creation or the write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension, owner)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from storage. Best-effort: missing files are ignored
        and OS errors are logged, not raised.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def delete_by_url(self, url: Optional[str], owner: str) -> bool:
        """
        Delete a file previously returned by upload() for the same owner.

        Returns True when the URL belonged to the owner's uploads and
        cleanup ran. Foreign URLs and other users' files are left alone.
        """
        relative_path = self.relative_path_from_url(url)
        if relative_path is None:
            return False
        if not self.owns(relative_path, owner):
            logger.warning("Refusing to delete %s: not uploaded by %s", relative_path, owner)
            return False
        await self.cleanup_file(str((self.storage_root / relative_path).resolve()))
        return True

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        owner: str,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Validate extension, size and MIME type, then store the file.

        Returns (absolute_path, relative_path).
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)
        return await self.store_file(content, ext, owner)

    async def upload(
        self,
        filename: str,
        content: bytes,
        owner: str,
        content_length: Optional[int] = None,
        replace_target_url: Optional[str] = None,
    ) -> str:
        """
        Store an upload of `owner` and return its public URL.

        When replace_target_url names an earlier upload of the same owner,
        that file is removed once the new one is safely written.
        """
        _, relative_path = await self.validate_and_store(
            filename=filename,
            content=content,
            owner=owner,
            content_length=content_length,
        )
        if replace_target_url:
            await self.delete_by_url(replace_target_url, owner)
        return self.public_url(relative_path)


def owner_key(user_id: str) -> str:
    """Directory name for a user's uploads; user ids never reach the path."""
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:16]


file_service = FileService()
