"""
NoteNest Backend — Request Identity Dependencies
=================================================

What:  FastAPI dependencies exposing the caller's user id.
How:   The auth gateway in front of this service verifies the session and
       forwards the user id in a header (settings.user_header, default
       X-User-Id). This service trusts that header and never sees tokens.
"""

from typing import Optional

from fastapi import Request

from notenest.config import settings
from notenest.exceptions import UnauthenticatedError


def get_optional_user(request: Request) -> Optional[str]:
    """The caller's user id, or None for anonymous requests."""
    value = request.headers.get(settings.user_header, "").strip()
    return value or None


def get_current_user(request: Request) -> str:
    """The caller's user id; raises UnauthenticatedError (401) when absent."""
    user_id = get_optional_user(request)
    if user_id is None:
        raise UnauthenticatedError()
    return user_id
