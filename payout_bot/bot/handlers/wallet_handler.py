"""
Wallet handlers for Telegram bot.

Handles wallet-related commands and callbacks:
- /balance: Balances of all wallets
- /wallets: Wallet addresses and networks
- /setdefaultwallet: Pick the default wallet from buttons
- default_wallet:<id> button: Apply the choice
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from payout_bot.services.payments_gateway import PaymentsGateway
from payout_bot.bot.handlers.common import (
    SERVICE_UNAVAILABLE,
    UNEXPECTED_ERROR,
    get_session,
    reply,
    report_failure
)
from payout_bot.bot.keyboards import DEFAULT_WALLET_PREFIX, get_wallet_selection_keyboard
from payout_bot.bot.utils.formatters import format_balances, format_wallets, md

logger = logging.getLogger(__name__)


async def balance_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /balance command - list wallet balances, default marked.

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

        result = await gateway.get_balances(session.token)
        if not result.success:
            await report_failure(update, context, result, "Error fetching wallet balances")
            return

        if not result.data:
            await reply(update, "You don't have any wallets yet.")
            return

        await reply(update, format_balances(result.data), parse_mode="Markdown")

    except Exception as e:
        logger.error(f"Error in balance_command: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)


async def wallets_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /wallets command - list wallets with address and network.
    """
    gateway: PaymentsGateway = context.bot_data.get('gateway')

    if not gateway:
        await reply(update, SERVICE_UNAVAILABLE)
        return

    try:
        session = await get_session(update, context)
        if session is None:
            return

        result = await gateway.list_wallets(session.token)
        if not result.success:
            await report_failure(update, context, result, "Error fetching wallets")
            return

        if not result.data:
            await reply(update, "You don't have any wallets yet.")
            return

        await reply(update, format_wallets(result.data), parse_mode="Markdown")

    except Exception as e:
        logger.error(f"Error in wallets_command: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)


async def set_default_wallet_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /setdefaultwallet command - offer one button per wallet.
    """
    gateway: PaymentsGateway = context.bot_data.get('gateway')

    if not gateway:
        await reply(update, SERVICE_UNAVAILABLE)
        return

    try:
        session = await get_session(update, context)
        if session is None:
            return

        result = await gateway.list_wallets(session.token)
        if not result.success:
            await report_failure(update, context, result, "Error fetching wallets")
            return

        if not result.data:
            await reply(update, "You don't have any wallets yet.")
            return

        await reply(
            update,
            "Select the wallet you want to use by default:",
            reply_markup=get_wallet_selection_keyboard(result.data)
        )

    except Exception as e:
        logger.error(f"Error in set_default_wallet_command: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)


async def default_wallet_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle wallet selection.

    Callback data format: "default_wallet:{wallet_id}"
    """
    query = update.callback_query
    await query.answer()

    gateway: PaymentsGateway = context.bot_data.get('gateway')
    if not gateway:
        await reply(update, SERVICE_UNAVAILABLE)
        return

    wallet_id = query.data[len(DEFAULT_WALLET_PREFIX):]
    if not wallet_id:
        await reply(update, "⚠️ Invalid wallet selection.")
        return

    try:
        session = await get_session(update, context)
        if session is None:
            return

        result = await gateway.set_default_wallet(session.token, wallet_id)
        if not result.success:
            await report_failure(update, context, result, "Error setting default wallet")
            return

        wallet = result.data
        if wallet is not None:
            await query.edit_message_text(
                f"✅ Your default wallet has been updated to: {md(wallet.label)}",
                parse_mode="Markdown"
            )
        else:
            await query.edit_message_text("✅ Your default wallet has been updated.")
        logger.info(f"Chat {update.effective_chat.id} set default wallet {wallet_id}")

    except Exception as e:
        logger.error(f"Error in default_wallet_callback: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)
