"""
Telegram keyboard layouts and callback data identifiers.
"""

from typing import List

from telegram import InlineKeyboardMarkup, InlineKeyboardButton

from payout_bot.models.wallet import Wallet

# Callback data
CONFIRM_SEND = "confirm_send"
CANCEL_SEND = "cancel_send"
WITHDRAW_BANK = "withdraw_bank"
WITHDRAW_WALLET = "withdraw_wallet"
CONFIRM_WALLET_WITHDRAW = "confirm_wallet_withdraw"
CONFIRM_BANK_WITHDRAW = "confirm_bank_withdraw"
CANCEL_WITHDRAW = "cancel_withdraw"
NETWORK_PREFIX = "network_"
DEFAULT_WALLET_PREFIX = "default_wallet:"
HISTORY_PAGE_PREFIX = "history_page"
NOOP = "noop"

# Button label -> network id sent to the API
NETWORKS = {
    "Solana": "solana",
    "Ethereum": "ethereum",
}


def get_confirm_keyboard(confirm_action: str, cancel_action: str) -> InlineKeyboardMarkup:
    """
    Get confirmation keyboard.

    Args:
        confirm_action: Callback data of the confirm button
        cancel_action: Callback data of the cancel button

    Returns:
        Inline keyboard markup
    """
    keyboard = [
        [
            InlineKeyboardButton("✅ Confirm", callback_data=confirm_action),
            InlineKeyboardButton("❌ Cancel", callback_data=cancel_action)
        ]
    ]
    return InlineKeyboardMarkup(keyboard)


def get_withdraw_method_keyboard() -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton("🏦 Bank Account", callback_data=WITHDRAW_BANK)],
        [InlineKeyboardButton("👛 External Wallet", callback_data=WITHDRAW_WALLET)]
    ]
    return InlineKeyboardMarkup(keyboard)


def get_network_keyboard() -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton(label, callback_data=f"{NETWORK_PREFIX}{network}")]
        for label, network in NETWORKS.items()
    ]
    return InlineKeyboardMarkup(keyboard)


def get_wallet_selection_keyboard(wallets: List[Wallet]) -> InlineKeyboardMarkup:
    """
    Get one button per wallet for choosing the default wallet.

    Args:
        wallets: Wallets of the organization

    Returns:
        Inline keyboard markup
    """
    keyboard = []
    for wallet in wallets:
        label = wallet.label + (" ✓" if wallet.is_default else "")
        keyboard.append(
            [InlineKeyboardButton(label, callback_data=f"{DEFAULT_WALLET_PREFIX}{wallet.id}")]
        )
    return InlineKeyboardMarkup(keyboard)
