"""
Telegram Bot application entry point.

Run with: python -m payout_bot.bot.main
"""

import logging
from telegram import BotCommand, Update
from telegram.ext import (
    Application,
    CommandHandler,
    CallbackQueryHandler,
    ContextTypes,
    TypeHandler
)

from payout_bot.core.config_loader import load_config, load_bot_token
from payout_bot.core.client_factory import ClientFactory
from payout_bot.core.conversation_store import ConversationStore
from payout_bot.core.logger import resolve_level, setup_logger
from payout_bot.core.otp_store import OtpCorrelationStore
from payout_bot.core.session_store import SessionStore
from payout_bot.services.payments_gateway import PaymentsGateway
from payout_bot.services.auth_service import AuthService
from payout_bot.services.transfer_service import TransferService
from payout_bot.services.notification_service import NotificationRelay
from payout_bot.bot.conversations import create_login_conversation, create_transfer_conversation
from payout_bot.bot.conversations.login import cancel_command
from payout_bot.bot.handlers.common import NO_PENDING_REQUEST, reply
from payout_bot.bot.handlers.account_handler import logout_command, profile_command
from payout_bot.bot.handlers.wallet_handler import (
    balance_command,
    wallets_command,
    set_default_wallet_command,
    default_wallet_callback
)
from payout_bot.bot.handlers.transfer_handler import (
    withdraw_command,
    history_command,
    history_page_callback
)
from payout_bot.bot.keyboards import DEFAULT_WALLET_PREFIX, HISTORY_PAGE_PREFIX, NOOP

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand("start", "Start the bot"),
    BotCommand("help", "Show available commands"),
    BotCommand("login", "Log in with your email"),
    BotCommand("logout", "Log out"),
    BotCommand("profile", "View your account profile"),
    BotCommand("balance", "Check your wallet balances"),
    BotCommand("wallets", "View your wallets"),
    BotCommand("setdefaultwallet", "Choose your default wallet"),
    BotCommand("send", "Send funds to an email address"),
    BotCommand("withdraw", "Withdraw to a bank account or wallet"),
    BotCommand("history", "View your transaction history"),
    BotCommand("cancel", "Cancel the current operation"),
]

# Flow buttons that only mean something inside an active conversation
STALE_FLOW_PREFIXES = ("confirm_", "cancel_", "network_")


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /start command.

    Args:
        update: Telegram update
        context: Bot context
    """
    await reply(
        update,
        "Welcome to the Payout Bot! 🚀\n\n"
        "This bot allows you to manage your account, including:\n"
        "- Depositing and withdrawing USDC\n"
        "- Checking balances\n"
        "- Transferring funds\n"
        "- Managing your wallets\n\n"
        "Use /login to sign in or /help to see available commands."
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle /help command.

    Args:
        update: Telegram update
        context: Bot context
    """
    help_text = (
        "ℹ️ *Help*\n\n"
        "*Authentication:*\n"
        "/login - Log in with your email\n"
        "/logout - Log out from your account\n"
        "/profile - View your account profile\n\n"
        "*Wallet Management:*\n"
        "/balance - Check your wallet balances\n"
        "/wallets - View your wallets\n"
        "/setdefaultwallet - Set your default wallet\n\n"
        "*Transfers:*\n"
        "/send - Send funds to an email address\n"
        "/withdraw - Withdraw funds to your bank or wallet\n"
        "/history - View your transaction history\n\n"
        "*Other Commands:*\n"
        "/cancel - Cancel the current operation\n"
        "/help - Show this help message\n"
    )
    await reply(update, help_text, parse_mode="Markdown")


async def handle_callback_query(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Handle callback queries from inline keyboards.

    Conversation buttons are consumed by the conversation handlers first;
    this routes the remaining ones based on callback_data prefix.

    Args:
        update: Telegram update
        context: Bot context
    """
    query = update.callback_query
    data = query.data or ""

    try:
        if data.startswith(DEFAULT_WALLET_PREFIX):
            await default_wallet_callback(update, context)

        elif data.startswith(f"{HISTORY_PAGE_PREFIX}_"):
            await history_page_callback(update, context)

        # Ignore noop callbacks (pagination page indicator)
        elif data == NOOP:
            await query.answer()

        # Buttons of a flow that has ended or timed out
        elif data.startswith(STALE_FLOW_PREFIXES):
            await query.answer()
            await reply(update, NO_PENDING_REQUEST)

        else:
            await query.answer("Unknown action")
            logger.warning(f"Unknown callback data: {data}")

    except Exception as e:
        logger.error(f"Error handling callback query: {e}", exc_info=True)
        try:
            await query.answer("An error occurred. Please try again.")
        except Exception:
            pass


async def log_update(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log every incoming update before it is routed (message text is not logged)."""
    if not isinstance(update, Update):
        return

    chat_id = update.effective_chat.id if update.effective_chat else None
    if update.callback_query is not None:
        logger.info(f"Callback from chat {chat_id}: {update.callback_query.data}")
    elif update.message is not None and update.message.text:
        text = update.message.text
        kind = text.split()[0] if text.startswith("/") else "text"
        logger.info(f"Message from chat {chat_id}: {kind}")
    else:
        logger.debug(f"Update {update.update_id} from chat {chat_id}")


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Last-resort handler for exceptions raised by other handlers."""
    logger.error(f"Unhandled error while processing update: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message is not None:
        try:
            await update.effective_message.reply_text(
                "❌ An unexpected error occurred. Please try again later."
            )
        except Exception as e:
            logger.error(f"Failed to report error to chat: {e}")


async def post_init(application: Application):
    """Check the session store and register the command list."""
    session_store: SessionStore = application.bot_data['session_store']
    # Raises SessionStoreError; the bot does not start without Redis
    await session_store.ping()

    await application.bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot commands registered")


async def post_shutdown(application: Application):
    """Release notification connections and network clients."""
    relay: NotificationRelay = application.bot_data.get('notification_relay')
    if relay is not None:
        await relay.close()

    client_factory: ClientFactory = application.bot_data.get('client_factory')
    if client_factory is not None:
        await client_factory.aclose()


def build_application(config: dict, bot_token: str) -> Application:
    """
    Create the application and wire services into bot_data.

    Args:
        config: Validated configuration (see ``load_config``)
        bot_token: Telegram bot token

    Returns:
        Application ready for ``run_polling``
    """
    application = (
        Application.builder()
        .token(bot_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Initialize clients and stores
    client_factory = ClientFactory(config['api'], config['redis'])
    session_config = config['session']
    session_store = SessionStore(
        client_factory.get_redis_client(),
        ttl_seconds=session_config['ttl_seconds'],
        key_prefix=session_config['key_prefix']
    )
    otp_store = OtpCorrelationStore()
    conversation_store = ConversationStore()

    # Initialize services
    gateway = PaymentsGateway(client_factory.get_http_client(), otp_store)
    notification_relay = NotificationRelay(
        gateway,
        session_store,
        application.bot,
        key=config['pusher']['key'],
        cluster=config['pusher']['cluster']
    )
    auth_service = AuthService(gateway, session_store, otp_store, notification_relay)
    transfer_service = TransferService(gateway, auth_service)

    # Store services in bot_data
    application.bot_data['config'] = config
    application.bot_data['client_factory'] = client_factory
    application.bot_data['session_store'] = session_store
    application.bot_data['otp_store'] = otp_store
    application.bot_data['conversation_store'] = conversation_store
    application.bot_data['gateway'] = gateway
    application.bot_data['notification_relay'] = notification_relay
    application.bot_data['auth_service'] = auth_service
    application.bot_data['transfer_service'] = transfer_service

    # Log every update before routing
    application.add_handler(TypeHandler(Update, log_update), group=-1)

    # Add conversation handlers (must be added first for priority)
    timeout = config['conversation']['timeout_seconds']
    application.add_handler(create_login_conversation(conversation_store, timeout=timeout))
    application.add_handler(create_transfer_conversation(conversation_store, timeout=timeout))

    # Add command handlers
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("logout", logout_command))
    application.add_handler(CommandHandler("profile", profile_command))
    application.add_handler(CommandHandler("balance", balance_command))
    application.add_handler(CommandHandler("wallets", wallets_command))
    application.add_handler(CommandHandler("setdefaultwallet", set_default_wallet_command))
    application.add_handler(CommandHandler("withdraw", withdraw_command))
    application.add_handler(CommandHandler("history", history_command))
    application.add_handler(CommandHandler("cancel", cancel_command))

    # Add callback query handler (for all remaining inline keyboard buttons)
    application.add_handler(CallbackQueryHandler(handle_callback_query))

    application.add_error_handler(error_handler)

    return application


def main():
    """Run the Telegram bot."""
    try:
        # Load configuration (also loads .env)
        config = load_config()

        log_config = config['logging']
        setup_logger(
            level=resolve_level(log_config['level']),
            log_dir=log_config['log_dir'],
            log_filename=log_config['log_filename']
        )

        bot_token = load_bot_token()
        application = build_application(config, bot_token)

        # Start bot
        logger.info("Starting Telegram bot...")
        application.run_polling(allowed_updates=Update.ALL_TYPES)

    except Exception as e:
        logger.error(f"Failed to start Telegram bot: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
