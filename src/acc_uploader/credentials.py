"""In-memory store for the application's 2-legged token."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from acc_uploader.models import AuthContext


class CredentialStore:
    """Holds at most one cached AuthContext.

    The context is swapped as a whole under a lock, so readers see either the
    previous or the new token and never a mix of the two. Concurrent refreshes
    are allowed; the last replace() wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._context: AuthContext | None = None

    def get(self) -> AuthContext | None:
        with self._lock:
            return self._context

    def replace(self, context: AuthContext) -> None:
        with self._lock:
            self._context = context

    def invalidate(self) -> None:
        with self._lock:
            self._context = None

    def valid_token(self, now: datetime, buffer: timedelta) -> str | None:
        """Return the cached token if it is still valid at now, minus buffer."""
        context = self.get()
        if context is not None and context.is_valid(now, buffer):
            return context.access_token
        return None
