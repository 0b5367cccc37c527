"""Authenticated chat session record."""

import time
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Optional

from payout_bot.models.auth import AuthToken


@dataclass(frozen=True)
class ChatSession:
    """
    Credentials of one Telegram chat.

    Stored as JSON under ``user_session:<chat_id>``. Existence of the record
    is what makes a chat "logged in".
    """

    chat_id: int
    token: str
    organization_id: str = ""
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[float] = None
    """Unix time the token expires, derived from ``expires_in`` at creation."""

    @classmethod
    def from_auth(cls, chat_id: int, auth: AuthToken, now: Optional[float] = None) -> "ChatSession":
        now = time.time() if now is None else now
        expires_at = now + auth.expires_in if auth.expires_in is not None else None
        return cls(
            chat_id=chat_id,
            token=auth.token,
            organization_id=auth.organization_id,
            refresh_token=auth.refresh_token,
            expires_in=auth.expires_in,
            expires_at=expires_at,
        )

    def with_organization(self, organization_id: str) -> "ChatSession":
        return replace(self, organization_id=organization_id)

    def refreshed(self, auth: AuthToken, now: Optional[float] = None) -> "ChatSession":
        """New session from a refresh response, keeping known fields the response omits."""
        renewed = ChatSession.from_auth(self.chat_id, auth, now=now)
        return replace(
            renewed,
            organization_id=renewed.organization_id or self.organization_id,
            refresh_token=renewed.refresh_token or self.refresh_token,
        )

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatSession":
        return cls(
            chat_id=int(data["chat_id"]),
            token=data["token"],
            organization_id=data.get("organization_id") or "",
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            expires_at=data.get("expires_at"),
        )
