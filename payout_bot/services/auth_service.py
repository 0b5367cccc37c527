"""
Authentication service.

Drives the email -> OTP -> token exchange, owns the lifecycle of chat
sessions (create, refresh, clear) and keeps the notification relay in step
with them. The Telegram conversation in ``bot/conversations/login.py`` only
collects input and reports the outcomes produced here.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from payout_bot.core.errors import ApiError, ApiResult, ErrorKind
from payout_bot.core.otp_store import OtpCorrelationStore
from payout_bot.core.session_store import SessionStore
from payout_bot.core.validators import is_valid_email, normalize_otp
from payout_bot.models.profile import UserProfile
from payout_bot.models.session import ChatSession
from payout_bot.services.payments_gateway import PaymentsGateway

logger = logging.getLogger(__name__)

# Words that identify internal credentials and must not reach the user
_SECRET_TERMS = re.compile(r"\b(sid|session_id|token|jwt|access_token|refresh_token)\b", re.IGNORECASE)
_OPAQUE_ID = re.compile(r"^[a-zA-Z0-9_-]{20,}$")
_MAX_MESSAGE_LENGTH = 100


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful OTP login."""

    session: ChatSession
    profile: Optional[UserProfile] = None


class AuthService:
    """
    Service for chat authentication.

    Session records live in the ``SessionStore``; OTP correlation ids in
    the ``OtpCorrelationStore``. When a ``NotificationRelay`` is given,
    logins subscribe the chat to deposit notifications and logouts
    release the subscription.
    """

    def __init__(
        self,
        gateway: PaymentsGateway,
        session_store: SessionStore,
        otp_store: OtpCorrelationStore,
        notification_relay=None
    ):
        self.gateway = gateway
        self.session_store = session_store
        self.otp_store = otp_store
        self.notification_relay = notification_relay

    async def is_logged_in(self, chat_id: int) -> bool:
        return await self.session_store.exists(chat_id)

    async def require_session(self, chat_id: int) -> ApiResult:
        """
        Look up the chat's session.

        Returns:
            ApiResult with the ``ChatSession``, or an authentication error.
        """
        session = await self.session_store.get(chat_id)
        if session is None:
            return ApiResult.fail(ApiError.not_authenticated())
        return ApiResult.ok(session)

    async def request_otp(self, email: str) -> ApiResult:
        """
        Validate ``email`` and ask the API to send it an OTP.

        An email that fails the syntax check never reaches the API.
        """
        email = (email or "").strip()
        if not is_valid_email(email):
            return ApiResult.fail(ApiError.validation("Invalid email format."))

        result = await self.gateway.request_otp(email)
        if result.success:
            logger.info(f"OTP requested for {email}")
        return result

    async def complete_login(self, chat_id: int, email: str, otp_text: str) -> ApiResult:
        """
        Verify an OTP and create the chat session.

        Steps on success: store the session, read the profile (and with it
        the organization id), store the merged session, subscribe to
        deposit notifications, forget the OTP correlation id.

        Args:
            chat_id: Telegram chat id
            email: Email the OTP was sent to
            otp_text: OTP as typed; spaces between digit groups are allowed

        Returns:
            ApiResult with a ``LoginResult``; failures carry a user-safe message.
        """
        otp = normalize_otp(otp_text)
        if otp is None:
            return ApiResult.fail(ApiError.validation("Invalid OTP format."))

        result = await self.gateway.authenticate_with_otp(email, otp, sid=self.otp_store.peek(email))
        if not result.success:
            logger.warning(f"OTP authentication failed for chat {chat_id}: {result.error_message}")
            return ApiResult.fail(
                ApiError(result.error.kind, friendly_login_error(result.error), result.error.status_code)
            )

        session = ChatSession.from_auth(chat_id, result.data)
        await self.session_store.save(session)

        profile = None
        profile_result = await self.gateway.get_profile(session.token)
        if profile_result.success:
            profile = profile_result.data
            if profile.organization_id and profile.organization_id != session.organization_id:
                session = session.with_organization(profile.organization_id)
                await self.session_store.save(session)
        else:
            logger.warning(f"Could not load profile for chat {chat_id}: {profile_result.error_message}")

        await self._subscribe(chat_id)
        self.otp_store.discard(email)

        logger.info(f"Chat {chat_id} logged in")
        return ApiResult.ok(LoginResult(session=session, profile=profile))

    async def logout(self, chat_id: int) -> bool:
        """
        Clear the chat's session.

        Returns:
            False if the chat was not logged in.
        """
        if not await self.session_store.exists(chat_id):
            return False
        await self._end_session(chat_id)
        logger.info(f"Chat {chat_id} logged out")
        return True

    async def recover_session(self, chat_id: int) -> bool:
        """
        React to an authentication error from the API.

        Refreshes the session with its refresh token when possible. The
        failed call is not repeated; the user is expected to retry.

        Returns:
            True if the session was refreshed, False if it was cleared.
        """
        session = await self.session_store.get(chat_id)
        if session is None:
            return False

        if not session.refresh_token:
            logger.info(f"Chat {chat_id}: session rejected and no refresh token, clearing")
            await self._end_session(chat_id)
            return False

        result = await self.gateway.refresh_token(session.refresh_token)
        if not result.success:
            logger.warning(f"Chat {chat_id}: token refresh failed: {result.error_message}")
            await self._end_session(chat_id)
            return False

        await self.session_store.save(session.refreshed(result.data))
        logger.info(f"Chat {chat_id}: session refreshed")
        return True

    async def _subscribe(self, chat_id: int) -> None:
        if self.notification_relay is None:
            return
        try:
            await self.notification_relay.subscribe(chat_id)
        except Exception as e:
            # Login stands even without notifications
            logger.error(f"Failed to subscribe chat {chat_id} to notifications: {e}", exc_info=True)

    async def _end_session(self, chat_id: int) -> None:
        # The relay reads the organization id from the session, so it goes first
        if self.notification_relay is not None:
            await self.notification_relay.unsubscribe(chat_id)
        await self.session_store.delete(chat_id)


def friendly_login_error(error: ApiError) -> str:
    """
    Turn an authentication failure into a message fit for the user.

    Known failure patterns get a fixed explanation; anything else is
    cleaned of credential names and opaque identifiers.
    """
    if error.kind == ErrorKind.TRANSPORT:
        return error.message

    message = (error.message or "").strip()
    lowered = message.lower()

    if "sid" in lowered and ("required" in lowered or "missing" in lowered):
        return "Your login session is missing. Please restart the login process."
    if "validation failed" in lowered or "unprocessable entity" in lowered:
        return "Validation failed. Please make sure your OTP is correct."
    if "expired" in lowered or "timeout" in lowered:
        return "Your OTP code has expired. Please request a new one."
    if "incorrect" in lowered or "invalid" in lowered or "wrong" in lowered:
        return "The OTP you entered is incorrect."
    if "too many attempts" in lowered or "rate limit" in lowered:
        return "Too many failed attempts. Please wait a moment before trying again."
    if "email" in lowered and ("not found" in lowered or "unknown" in lowered):
        return "This email is not registered. Please check your email or sign up first."
    if "unauthorized" in lowered:
        return "Authentication failed. Please make sure you are using the correct credentials."
    if error.status_code is not None and error.status_code >= 500:
        return "Server error occurred. Please try again later."

    cleaned = _SECRET_TERMS.sub("login credentials", message)
    cleaned = re.sub(r'[{}\[\]"]', "", cleaned).strip()
    if not cleaned or len(cleaned) > _MAX_MESSAGE_LENGTH or _OPAQUE_ID.match(cleaned):
        return "Authentication failed. Please try again."
    return cleaned
