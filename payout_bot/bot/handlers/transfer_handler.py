"""
Transfer handlers for Telegram bot.

Handles transfer commands that are not conversations:
- /withdraw: Offer the withdrawal methods (the buttons start a conversation)
- /history: Paginated transfer history
- History pagination: Navigate through pages
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from payout_bot.services.transfer_service import TransferService
from payout_bot.bot.handlers.common import (
    SERVICE_UNAVAILABLE,
    get_session,
    reply,
    report_failure
)
from payout_bot.bot.keyboards import HISTORY_PAGE_PREFIX, get_withdraw_method_keyboard
from payout_bot.bot.utils.formatters import format_history
from payout_bot.bot.utils.pagination import PaginationHelper

logger = logging.getLogger(__name__)


async def withdraw_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /withdraw command - show the withdrawal method buttons.

    Args:
        update: Telegram update containing command.
        context: Bot context.

    Returns:
        None
    """
    try:
        if await get_session(update, context) is None:
            return

        await reply(
            update,
            "💸 *Withdraw Funds*\n\nPlease select your withdrawal method:",
            parse_mode="Markdown",
            reply_markup=get_withdraw_method_keyboard()
        )

    except Exception as e:
        logger.error(f"Error in withdraw_command: {e}", exc_info=True)
        await reply(update, "❌ Something went wrong while processing your request. Please try again later.")


async def history_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /history command - display the first page of transfers.
    """
    await _show_history_page(update, context, page=1)


async def history_page_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle pagination callback for transfer history.

    Callback data format: "history_page_{page_number}"
    """
    query = update.callback_query
    await query.answer()

    try:
        page = PaginationHelper.parse_page(query.data, HISTORY_PAGE_PREFIX)
    except ValueError:
        logger.warning(f"Invalid history page callback: {query.data}")
        await reply(update, "⚠️ Invalid page.")
        return

    await _show_history_page(update, context, page=page, edit=True)


async def _show_history_page(update: Update, context: ContextTypes.DEFAULT_TYPE, page: int, edit: bool = False):
    transfer_service: TransferService = context.bot_data.get('transfer_service')
    config = context.bot_data.get('config') or {}
    page_size = config.get('history', {}).get('page_size', 10)

    if not transfer_service:
        await reply(update, SERVICE_UNAVAILABLE)
        return

    try:
        if await get_session(update, context) is None:
            return

        result = await transfer_service.get_history(update.effective_chat.id, page=page, limit=page_size)
        if not result.success:
            await report_failure(update, context, result, "Failed to fetch transaction history")
            return

        paginated = PaginationHelper.from_page(result.data)

        if paginated.is_empty():
            await reply(update, "📝 You don't have any transactions yet.")
            return

        message = format_history(paginated)
        keyboard = PaginationHelper.create_pagination_keyboard(
            paginated,
            callback_prefix=HISTORY_PAGE_PREFIX
        )

        if edit:
            await update.callback_query.edit_message_text(message, reply_markup=keyboard, parse_mode="Markdown")
        else:
            await reply(update, message, reply_markup=keyboard, parse_mode="Markdown")

    except Exception as e:
        logger.error(f"Error showing history page {page}: {e}", exc_info=True)
        await reply(update, "❌ Something went wrong while fetching your transaction history. Please try again later.")
