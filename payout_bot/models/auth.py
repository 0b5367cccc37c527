"""
Canonical form of the OTP-authenticate and refresh responses.

The authenticate endpoint has answered with several shapes over time
(``token`` or ``accessToken``; ``expiresIn`` or ``expireAt``;
``organizationId`` at the top level or inside ``user``). ``AuthToken``
is the only place that knows about them.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthToken:
    """Credentials returned by a successful authentication or refresh."""

    token: str
    organization_id: str = ""
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_response(cls, payload: Dict[str, Any], now: Optional[datetime] = None) -> "AuthToken":
        """
        Map an authenticate/refresh response body onto an AuthToken.

        Args:
            payload: Decoded JSON body
            now: Current time, used to derive ``expires_in`` from ``expireAt``

        Returns:
            AuthToken

        Raises:
            ValueError: The body carries neither ``token`` nor ``accessToken``.
        """
        if not isinstance(payload, dict):
            raise ValueError("Invalid response from server")

        token = payload.get("token") or payload.get("accessToken")
        if not token:
            raise ValueError("Invalid response from server")

        refresh_token = payload.get("refreshToken") or payload.get("refresh_token") or None

        expires_in = payload.get("expiresIn")
        if expires_in is not None:
            try:
                expires_in = int(expires_in)
            except (TypeError, ValueError):
                expires_in = None
        if expires_in is None and payload.get("expireAt"):
            # expireAt is compared against the local clock; skew between the
            # two clocks shifts the derived value.
            expires_in = seconds_until(payload["expireAt"], now)

        organization_id = payload.get("organizationId") or ""
        user = payload.get("user")
        if not organization_id and isinstance(user, dict):
            organization_id = user.get("organizationId") or ""

        logger.debug(
            f"Parsed auth response: token_source={'token' if payload.get('token') else 'accessToken'}, "
            f"has_refresh_token={bool(refresh_token)}, expires_in={expires_in}, "
            f"has_organization={bool(organization_id)}"
        )

        return cls(
            token=token,
            organization_id=organization_id,
            refresh_token=refresh_token,
            expires_in=expires_in,
        )


def parse_timestamp(value: Union[str, int, float]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or a unix timestamp (seconds or milliseconds).

    Naive values are taken as UTC.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Unparseable timestamp: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def seconds_until(value: Union[str, int, float], now: Optional[datetime] = None) -> Optional[int]:
    """Whole seconds from ``now`` until the given timestamp (may be negative)."""
    target = parse_timestamp(value)
    if target is None:
        return None
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.floor((target - now).total_seconds())
