"""
Helpers shared by the command handlers and conversations.
"""

import logging
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from payout_bot.core.errors import ApiResult, ErrorKind
from payout_bot.models.session import ChatSession
from payout_bot.services.auth_service import AuthService

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = "⚠️ Service temporarily unavailable. Try again later."
LOGIN_REQUIRED = "⚠️ You need to login first! Use /login to authenticate."
SESSION_EXPIRED = "⚠️ Your session has expired. Please login again with /login"
SESSION_RENEWED = "🔄 Your session was renewed. Please repeat the command."
NO_PENDING_REQUEST = "⚠️ No pending request. Please start again."
UNEXPECTED_ERROR = "❌ Something went wrong while processing your request. Please try again later."


async def reply(update: Update, text: str, **kwargs):
    """Reply in the chat of ``update``, whether it is a message or a button press."""
    return await update.effective_message.reply_text(text, **kwargs)


async def get_session(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Optional[ChatSession]:
    """
    Return the chat's session, telling the user to log in when there is none.
    """
    auth_service: AuthService = context.bot_data.get('auth_service')
    if not auth_service:
        await reply(update, SERVICE_UNAVAILABLE)
        return None

    result = await auth_service.require_session(update.effective_chat.id)
    if not result.success:
        await reply(update, LOGIN_REQUIRED)
        return None
    return result.data


async def report_failure(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    result: ApiResult,
    action: str
) -> None:
    """
    Tell the user why ``action`` failed.

    Authentication failures first go through ``AuthService.recover_session``:
    the user is asked to repeat the command if the session could be
    refreshed, and to log in again otherwise.
    """
    chat_id = update.effective_chat.id

    if result.error is not None and result.error.kind == ErrorKind.AUTHENTICATION:
        auth_service: AuthService = context.bot_data.get('auth_service')
        recovered = await auth_service.recover_session(chat_id) if auth_service else False
        await reply(update, SESSION_RENEWED if recovered else SESSION_EXPIRED)
        return

    await reply(update, f"❌ {action}: {result.error_message}")
