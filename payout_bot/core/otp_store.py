"""
In-process store of OTP correlation ids.

``POST /auth/email-otp/request`` answers with an opaque ``sid`` that some
backends require again on ``/auth/email-otp/authenticate``. The sid is kept
here, keyed by email, until the login succeeds or the entry goes stale.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class OtpCorrelationStore:
    """
    Email -> sid map with a maximum age.

    Entries are overwritten when the same email requests a new OTP and are
    silently dropped once older than ``max_age`` seconds. Absence is a normal
    condition; callers must be able to authenticate without a sid.
    """

    def __init__(self, max_age: float = 15 * 60, clock: Callable[[], float] = time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def put(self, email: str, sid: str) -> None:
        self._entries[self._key(email)] = (sid, self._clock())
        logger.debug(f"Stored OTP correlation id for {email}")

    def peek(self, email: str) -> Optional[str]:
        """Return the sid for an email without consuming it."""
        key = self._key(email)
        entry = self._entries.get(key)
        if entry is None:
            return None
        sid, created_at = entry
        if self._clock() - created_at > self.max_age:
            del self._entries[key]
            logger.debug(f"OTP correlation id for {email} expired")
            return None
        return sid

    def discard(self, email: str) -> None:
        if self._entries.pop(self._key(email), None) is not None:
            logger.debug(f"Cleared OTP correlation id for {email}")

    def __contains__(self, email: str) -> bool:
        return self.peek(email) is not None
