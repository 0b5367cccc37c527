"""
Account handlers for Telegram bot.

Handles account-related commands:
- /logout: Clear the session and stop notifications
- /profile: Show profile and verification status
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from payout_bot.services.auth_service import AuthService
from payout_bot.services.payments_gateway import PaymentsGateway
from payout_bot.bot.handlers.common import (
    SERVICE_UNAVAILABLE,
    UNEXPECTED_ERROR,
    get_session,
    reply,
    report_failure
)
from payout_bot.bot.utils.formatters import format_profile

logger = logging.getLogger(__name__)


async def logout_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /logout command.

    Args:
        update: Telegram update containing command.
        context: Bot context.

    Returns:
        None
    """
    auth_service: AuthService = context.bot_data.get('auth_service')

    if not auth_service:
        await reply(update, SERVICE_UNAVAILABLE)
        return

    try:
        if not await auth_service.logout(update.effective_chat.id):
            await reply(update, "❌ You are not logged in. Use /login to sign in.")
            return

        await reply(update, "👋 You have been logged out successfully. Use /login to sign in again.")

    except Exception as e:
        logger.error(f"Error in logout_command: {e}", exc_info=True)
        await reply(update, "❌ An error occurred during logout. Please try again.")


async def profile_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /profile command - show profile with KYC/KYB status.

    When the profile does not carry a KYC status, the latest KYC record
    is used instead.

    Args:
        update: Telegram update containing command.
        context: Bot context.

    Returns:
        None
    """
    gateway: PaymentsGateway = context.bot_data.get('gateway')

    if not gateway:
        await reply(update, SERVICE_UNAVAILABLE)
        return

    try:
        session = await get_session(update, context)
        if session is None:
            return

        result = await gateway.get_profile(session.token)
        if not result.success:
            await report_failure(update, context, result, "Failed to fetch profile")
            return

        profile = result.data
        kyc_status = profile.kyc_status
        if not kyc_status:
            kyc_result = await gateway.get_kyc_status(session.token)
            if kyc_result.success and kyc_result.data:
                kyc_status = kyc_result.data[0].status
            elif not kyc_result.success:
                logger.warning(f"KYC lookup failed: {kyc_result.error_message}")

        await reply(update, format_profile(profile, kyc_status), parse_mode="Markdown")

    except Exception as e:
        logger.error(f"Error in profile_command: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)
