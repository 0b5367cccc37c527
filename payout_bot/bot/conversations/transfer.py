"""
Send and withdraw conversation handler for Telegram bot.

Handles three multi-step flows that end in a confirm/cancel gate:
- /send: recipient -> amount -> description -> confirmation
- withdraw_wallet button: address -> amount -> network -> confirmation
- withdraw_bank button: amount -> confirmation

Invalid input re-prompts without advancing. Confirm buttons take the
draft out of the ConversationStore before anything is submitted, so a
repeated tap finds no pending request.
"""

import logging
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import (
    ContextTypes,
    ConversationHandler,
    CommandHandler,
    MessageHandler,
    CallbackQueryHandler,
    TypeHandler,
    filters
)

from payout_bot.core.conversation_store import ConversationState, ConversationStore, FlowKind
from payout_bot.core.validators import (
    is_valid_recipient,
    is_valid_wallet_address,
    normalize_description,
    parse_amount
)
from payout_bot.services.transfer_service import TransferService
from payout_bot.bot.conversations.flow_filter import ActiveFlowFilter
from payout_bot.bot.conversations.login import cancel_command
from payout_bot.bot.handlers.common import (
    NO_PENDING_REQUEST,
    SERVICE_UNAVAILABLE,
    UNEXPECTED_ERROR,
    get_session,
    reply,
    report_failure
)
from payout_bot.bot.keyboards import (
    CANCEL_SEND,
    CANCEL_WITHDRAW,
    CONFIRM_BANK_WITHDRAW,
    CONFIRM_SEND,
    CONFIRM_WALLET_WITHDRAW,
    NETWORK_PREFIX,
    NETWORKS,
    WITHDRAW_BANK,
    get_confirm_keyboard,
    get_network_keyboard
)
from payout_bot.bot.utils.formatters import (
    format_bank_withdraw_result,
    format_bank_withdraw_summary,
    format_send_result,
    format_send_summary,
    format_wallet_withdraw_result,
    format_wallet_withdraw_summary
)

logger = logging.getLogger(__name__)

TRANSFER_FLOWS = (FlowKind.SEND, FlowKind.WALLET_WITHDRAW, FlowKind.BANK_WITHDRAW)

AMOUNT_PROMPT = "⚠️ Please enter a valid amount greater than 0 with at most 6 decimals (e.g., 10 or 10.5)."


# --------------------------------------------------------------------------- #
# Entry points
# --------------------------------------------------------------------------- #

async def send_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /send command - start an email transfer.

    Args:
        update: Telegram update containing command.
        context: Bot context with bot_data (services).

    Returns:
        AWAITING_RECIPIENT or ConversationHandler.END.
    """
    store: ConversationStore = context.bot_data.get('conversation_store')
    if store is None:
        await reply(update, SERVICE_UNAVAILABLE)
        return ConversationHandler.END

    try:
        if await get_session(update, context) is None:
            return ConversationHandler.END

        store.begin(update.effective_chat.id, FlowKind.SEND, ConversationState.AWAITING_RECIPIENT)
        await reply(
            update,
            "📤 *Send Funds*\n\nPlease enter the recipient's email address:",
            parse_mode="Markdown"
        )
        return ConversationState.AWAITING_RECIPIENT

    except Exception as e:
        logger.error(f"Error in send_command: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)
        return ConversationHandler.END


async def withdraw_method_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle the withdrawal method buttons shown by /withdraw.

    Callback data: "withdraw_bank" or "withdraw_wallet"

    Returns:
        AWAITING_AMOUNT (bank), AWAITING_WALLET_ADDRESS (wallet) or END.
    """
    query = update.callback_query
    await query.answer()

    store: ConversationStore = context.bot_data.get('conversation_store')
    if store is None:
        await reply(update, SERVICE_UNAVAILABLE)
        return ConversationHandler.END

    try:
        if await get_session(update, context) is None:
            return ConversationHandler.END

        chat_id = update.effective_chat.id

        if query.data == WITHDRAW_BANK:
            store.begin(chat_id, FlowKind.BANK_WITHDRAW, ConversationState.AWAITING_AMOUNT)
            await reply(
                update,
                "🏦 *Withdraw to Bank Account*\n\nPlease enter the amount in USDC to withdraw:",
                parse_mode="Markdown"
            )
            return ConversationState.AWAITING_AMOUNT

        store.begin(chat_id, FlowKind.WALLET_WITHDRAW, ConversationState.AWAITING_WALLET_ADDRESS)
        await reply(
            update,
            "🔑 *Withdraw to External Wallet*\n\nPlease enter the destination wallet address:",
            parse_mode="Markdown"
        )
        return ConversationState.AWAITING_WALLET_ADDRESS

    except Exception as e:
        logger.error(f"Error in withdraw_method_callback: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)
        return ConversationHandler.END


# --------------------------------------------------------------------------- #
# Text steps
# --------------------------------------------------------------------------- #

async def receive_recipient(update: Update, context: ContextTypes.DEFAULT_TYPE):
    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')
    text = update.message.text.strip()

    if not is_valid_recipient(text):
        await reply(update, "⚠️ Please enter a valid email address.")
        return ConversationState.AWAITING_RECIPIENT

    store.get(chat_id).recipient = text
    await reply(update, f"Please enter the amount in USDC to send to {text}:")
    return store.advance(chat_id, ConversationState.AWAITING_AMOUNT)


async def receive_address(update: Update, context: ContextTypes.DEFAULT_TYPE):
    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')
    text = update.message.text.strip()

    if not is_valid_wallet_address(text):
        await reply(update, "⚠️ Please enter a valid wallet address.")
        return ConversationState.AWAITING_WALLET_ADDRESS

    store.get(chat_id).address = text
    await reply(update, "Please enter the amount in USDC to withdraw:")
    return store.advance(chat_id, ConversationState.AWAITING_AMOUNT)


async def receive_amount(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle amount input, shared by all three flows.

    The next step depends on the flow of the chat's draft.
    """
    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')
    text = update.message.text.strip()

    if parse_amount(text) is None:
        await reply(update, AMOUNT_PROMPT)
        return ConversationState.AWAITING_AMOUNT

    draft = store.get(chat_id)
    # Submitted exactly as typed
    draft.amount = text

    if draft.kind == FlowKind.SEND:
        await reply(
            update,
            "Please enter a description for this transfer (optional, type 'skip' to leave blank):"
        )
        return store.advance(chat_id, ConversationState.AWAITING_DESCRIPTION)

    if draft.kind == FlowKind.WALLET_WITHDRAW:
        await reply(
            update,
            "Please select the network for the withdrawal:",
            reply_markup=get_network_keyboard()
        )
        return store.advance(chat_id, ConversationState.AWAITING_NETWORK)

    await reply(
        update,
        format_bank_withdraw_summary(draft),
        parse_mode="Markdown",
        reply_markup=get_confirm_keyboard(CONFIRM_BANK_WITHDRAW, CANCEL_WITHDRAW)
    )
    return store.advance(chat_id, ConversationState.AWAITING_BANK_CONFIRMATION)


async def receive_description(update: Update, context: ContextTypes.DEFAULT_TYPE):
    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')

    draft = store.get(chat_id)
    draft.description = normalize_description(update.message.text)

    await reply(
        update,
        format_send_summary(draft),
        parse_mode="Markdown",
        reply_markup=get_confirm_keyboard(CONFIRM_SEND, CANCEL_SEND)
    )
    return store.advance(chat_id, ConversationState.AWAITING_CONFIRMATION)


# --------------------------------------------------------------------------- #
# Buttons
# --------------------------------------------------------------------------- #

async def network_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle network selection.

    Callback data format: "network_{network}"
    """
    query = update.callback_query
    await query.answer()

    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')

    draft = store.get(chat_id)
    if draft is None or draft.kind != FlowKind.WALLET_WITHDRAW:
        await reply(update, NO_PENDING_REQUEST)
        return ConversationHandler.END

    network = query.data[len(NETWORK_PREFIX):]
    if network not in NETWORKS.values():
        await reply(update, "⚠️ Please select one of the listed networks.", reply_markup=get_network_keyboard())
        return ConversationState.AWAITING_NETWORK

    draft.network = network
    await reply(
        update,
        format_wallet_withdraw_summary(draft),
        parse_mode="Markdown",
        reply_markup=get_confirm_keyboard(CONFIRM_WALLET_WITHDRAW, CANCEL_WITHDRAW)
    )
    return store.advance(chat_id, ConversationState.AWAITING_CONFIRMATION)


async def _submit(update: Update, context: ContextTypes.DEFAULT_TYPE, kind: FlowKind, progress: str,
                  format_result, failure: str):
    query = update.callback_query
    await query.answer()

    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')
    transfer_service: TransferService = context.bot_data.get('transfer_service')

    # Taken before any I/O so a second tap cannot submit twice
    draft = store.take(chat_id, kind)
    if draft is None:
        await reply(update, NO_PENDING_REQUEST)
        return ConversationHandler.END

    try:
        await query.edit_message_reply_markup(reply_markup=None)
    except TelegramError as e:
        logger.debug(f"Could not remove confirmation buttons: {e}")

    try:
        await reply(update, progress)
        result = await transfer_service.submit(chat_id, draft)

        if result.success:
            await reply(update, format_result(draft, result.data), parse_mode="Markdown")
        else:
            await report_failure(update, context, result, failure)

    except Exception as e:
        logger.error(f"Error submitting {kind.value} for chat {chat_id}: {e}", exc_info=True)
        await reply(update, UNEXPECTED_ERROR)

    return ConversationHandler.END


async def confirm_send_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    return await _submit(
        update, context, FlowKind.SEND,
        "🔄 Processing your transfer...", format_send_result, "Transfer failed"
    )


async def confirm_wallet_withdraw_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    return await _submit(
        update, context, FlowKind.WALLET_WITHDRAW,
        "🔄 Processing your withdrawal...", format_wallet_withdraw_result, "Withdrawal failed"
    )


async def confirm_bank_withdraw_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    return await _submit(
        update, context, FlowKind.BANK_WITHDRAW,
        "🔄 Processing your bank withdrawal...", format_bank_withdraw_result, "Bank withdrawal failed"
    )


async def cancel_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle the cancel buttons of the confirmation step.

    Callback data: "cancel_send" or "cancel_withdraw"
    """
    query = update.callback_query
    await query.answer()

    store: ConversationStore = context.bot_data.get('conversation_store')
    store.discard(update.effective_chat.id)

    try:
        await query.edit_message_reply_markup(reply_markup=None)
    except TelegramError as e:
        logger.debug(f"Could not remove confirmation buttons: {e}")

    if query.data == CANCEL_SEND:
        await reply(update, "❌ Transfer has been canceled.")
    else:
        await reply(update, "❌ Withdrawal has been canceled.")
    return ConversationHandler.END


async def transfer_timeout(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Drop the draft of an abandoned send or withdrawal."""
    chat_id = update.effective_chat.id
    store: ConversationStore = context.bot_data.get('conversation_store')

    draft = store.get(chat_id)
    if draft is None or draft.kind not in TRANSFER_FLOWS:
        return

    store.discard(chat_id)
    logger.info(f"{draft.kind.value} flow timed out for chat {chat_id}")
    await context.bot.send_message(
        chat_id=chat_id,
        text="⏰ Your request timed out. Please start again."
    )


# ConversationHandler configuration
def create_transfer_conversation(store: ConversationStore, timeout: float = 300) -> ConversationHandler:
    """
    Create and configure the send/withdraw conversation handler.

    Args:
        store: Conversation store shared with the other flows.
        timeout: Seconds of inactivity before the flow is dropped.

    Returns:
        ConversationHandler for sends and withdrawals.
    """
    text_input = filters.TEXT & ~filters.COMMAND & ActiveFlowFilter(store, *TRANSFER_FLOWS)
    cancel_button = CallbackQueryHandler(cancel_callback, pattern="^cancel_(send|withdraw)$")

    return ConversationHandler(
        entry_points=[
            CommandHandler("send", send_command),
            CallbackQueryHandler(withdraw_method_callback, pattern="^withdraw_(bank|wallet)$")
        ],
        states={
            ConversationState.AWAITING_RECIPIENT: [MessageHandler(text_input, receive_recipient)],
            ConversationState.AWAITING_WALLET_ADDRESS: [MessageHandler(text_input, receive_address)],
            ConversationState.AWAITING_AMOUNT: [MessageHandler(text_input, receive_amount)],
            ConversationState.AWAITING_DESCRIPTION: [MessageHandler(text_input, receive_description)],
            ConversationState.AWAITING_NETWORK: [
                CallbackQueryHandler(network_callback, pattern=f"^{NETWORK_PREFIX}")
            ],
            ConversationState.AWAITING_CONFIRMATION: [
                CallbackQueryHandler(confirm_send_callback, pattern=f"^{CONFIRM_SEND}$"),
                CallbackQueryHandler(confirm_wallet_withdraw_callback, pattern=f"^{CONFIRM_WALLET_WITHDRAW}$"),
                cancel_button
            ],
            ConversationState.AWAITING_BANK_CONFIRMATION: [
                CallbackQueryHandler(confirm_bank_withdraw_callback, pattern=f"^{CONFIRM_BANK_WITHDRAW}$"),
                cancel_button
            ],
            ConversationHandler.TIMEOUT: [TypeHandler(Update, transfer_timeout)]
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        allow_reentry=True,
        conversation_timeout=timeout
    )
