"""
NoteNest Backend — Notifications for Tracked Calls
===================================================

What:  Turns the outcome of a remote call into a transient user notification
       (a "toast") carrying one of three messages: loading, success, error.
How:   track() awaits the call. Success yields the success message; an
       application error yields the generic error message. There is no retry
       and no error classification beyond what the caller does with the
       returned exception.
Who:   Used by the trash banner actions.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

from notenest.exceptions import NoteNestError
from notenest.schemas.views import Notice, NoticeMessages

logger = logging.getLogger(__name__)


@dataclass
class Tracked:
    notice: Notice
    result: Any = None
    error: Optional[NoteNestError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def track(call: Awaitable[Any], messages: NoticeMessages) -> Tracked:
    """
    Await `call` and describe its outcome with `messages`.

    Only NoteNestError is converted into an error notice; anything else is
    a bug and propagates to the global 500 handler.
    """
    logger.debug("Notice: %s", messages.loading)
    try:
        result = await call
    except NoteNestError as e:
        logger.warning("%s (%s: %s)", messages.error, type(e).__name__, e.message)
        return Tracked(notice=Notice(status="error", message=messages.error), error=e)
    return Tracked(notice=Notice(status="success", message=messages.success), result=result)
