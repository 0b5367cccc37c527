"""
Login conversation handler for Telegram bot.

Handles the email/OTP login flow:
1. /login asks for the account email
2. The email is validated and an OTP is requested for it
3. The OTP is verified; the session is stored and notifications start

An invalid email or OTP ends the flow; the user restarts with /login.
"""

import logging
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import (
    ContextTypes,
    ConversationHandler,
    CommandHandler,
    MessageHandler,
    TypeHandler,
    filters
)

from payout_bot.core.conversation_store import ConversationState, ConversationStore, FlowKind
from payout_bot.core.errors import ErrorKind
from payout_bot.services.auth_service import AuthService
from payout_bot.bot.conversations.flow_filter import ActiveFlowFilter
from payout_bot.bot.handlers.common import SERVICE_UNAVAILABLE, UNEXPECTED_ERROR, reply
from payout_bot.bot.utils.formatters import format_welcome

logger = logging.getLogger(__name__)

AWAITING_EMAIL = ConversationState.AWAITING_EMAIL
AWAITING_OTP = ConversationState.AWAITING_OTP


async def login_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /login command - start the login flow.

    Args:
        update: Telegram update containing command.
        context: Bot context with bot_data (services).

    Returns:
        AWAITING_EMAIL or ConversationHandler.END.
    """
    chat_id = update.effective_chat.id
    auth_service: AuthService = context.bot_data.get('auth_service')
    store: ConversationStore = context.bot_data.get('conversation_store')

    if auth_service is None or store is None:
        await reply(update, SERVICE_UNAVAILABLE)
        return ConversationHandler.END

    try:
        if await auth_service.is_logged_in(chat_id):
            await reply(
                update,
                "🔒 You are already logged in. Use /profile to view your account details "
                "or /logout to sign out."
            )
            return ConversationHandler.END

        store.begin(chat_id, FlowKind.LOGIN, AWAITING_EMAIL)
        await reply(update, "📧 Please enter your account email:")
        return AWAITING_EMAIL

    except Exception as e:
        logger.error(f"Error in login_command: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)
        return ConversationHandler.END


async def receive_email(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle email input: validate it and request an OTP.

    Returns:
        AWAITING_OTP on success, ConversationHandler.END otherwise.
    """
    chat_id = update.effective_chat.id
    auth_service: AuthService = context.bot_data.get('auth_service')
    store: ConversationStore = context.bot_data.get('conversation_store')
    email = update.message.text.strip()

    try:
        result = await auth_service.request_otp(email)

        if not result.success:
            store.take(chat_id, FlowKind.LOGIN)
            if result.error.kind == ErrorKind.VALIDATION:
                await reply(update, "❌ Invalid email format. Please try /login again.")
            else:
                await reply(update, f"❌ Failed to send OTP: {result.error_message} Please try /login again.")
            return ConversationHandler.END

        store.get(chat_id).email = email
        await reply(update, f"✅ OTP sent to {email}. Please enter the 6-digit OTP code:")
        return store.advance(chat_id, AWAITING_OTP)

    except Exception as e:
        logger.error(f"Error in receive_email: {e}", exc_info=True)
        store.take(chat_id, FlowKind.LOGIN)
        await reply(update, UNEXPECTED_ERROR)
        return ConversationHandler.END


async def receive_otp(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle OTP input: authenticate and create the session.

    The flow ends whatever the outcome.
    """
    chat_id = update.effective_chat.id
    auth_service: AuthService = context.bot_data.get('auth_service')
    store: ConversationStore = context.bot_data.get('conversation_store')

    draft = store.take(chat_id, FlowKind.LOGIN)
    if draft is None or not draft.email:
        await reply(update, "⚠️ Your login request has expired. Please try /login again.")
        return ConversationHandler.END

    try:
        progress = await reply(update, "🔄 Authenticating...")
        result = await auth_service.complete_login(chat_id, draft.email, update.message.text)

        try:
            await progress.delete()
        except TelegramError as e:
            logger.debug(f"Could not delete progress message: {e}")

        if not result.success:
            if result.error.kind == ErrorKind.VALIDATION:
                await reply(update, "❌ Invalid OTP format. Please try /login again.")
            else:
                await reply(update, f"❌ {result.error_message} Please try /login again.")
            return ConversationHandler.END

        await reply(update, format_welcome(result.data.profile))
        return ConversationHandler.END

    except Exception as e:
        logger.error(f"Error in receive_otp: {e}", exc_info=True)
        await reply(update, "❌ An error occurred during login. Please try /login again.")
        return ConversationHandler.END


async def login_timeout(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Drop the login draft when the user stops answering."""
    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')

    draft = store.take(chat_id, FlowKind.LOGIN)
    if draft is None:
        return

    if draft.state == AWAITING_OTP:
        text = "⏰ OTP verification timeout. Please try /login again."
    else:
        text = "⏰ Email input timeout. Please try /login again."

    logger.info(f"Login flow timed out for chat {chat_id}")
    await context.bot.send_message(chat_id=chat_id, text=text)


async def cancel_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /cancel command inside any flow.

    Returns:
        ConversationHandler.END
    """
    store: ConversationStore = context.bot_data.get('conversation_store')

    if store is not None and store.discard(update.effective_chat.id):
        await reply(update, "❌ Cancelled.")
    else:
        await reply(update, "Nothing to cancel.")
    return ConversationHandler.END


# ConversationHandler configuration
def create_login_conversation(store: ConversationStore, timeout: float = 300) -> ConversationHandler:
    """
    Create and configure the login conversation handler.

    Args:
        store: Conversation store shared with the other flows.
        timeout: Seconds of inactivity before the flow is dropped.

    Returns:
        ConversationHandler for login.
    """
    text_input = filters.TEXT & ~filters.COMMAND & ActiveFlowFilter(store, FlowKind.LOGIN)

    return ConversationHandler(
        entry_points=[CommandHandler("login", login_command)],
        states={
            AWAITING_EMAIL: [MessageHandler(text_input, receive_email)],
            AWAITING_OTP: [MessageHandler(text_input, receive_otp)],
            ConversationHandler.TIMEOUT: [TypeHandler(Update, login_timeout)]
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        allow_reentry=True,
        conversation_timeout=timeout
    )
