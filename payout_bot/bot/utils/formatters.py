"""
Message formatting for Telegram replies.

All messages use legacy Markdown; values that come from users or the API
are escaped with ``escape_markdown`` before being interpolated.
"""

from datetime import datetime
from typing import List, Optional

from telegram.helpers import escape_markdown

from payout_bot.core.conversation_store import Draft
from payout_bot.models.profile import UserProfile
from payout_bot.models.transfer import TransferRecord
from payout_bot.models.wallet import Wallet, WalletBalance
from payout_bot.bot.utils.pagination import PaginatedData


def md(value) -> str:
    """Escape a value for legacy Markdown."""
    return escape_markdown(str(value), version=1)


def truncate_middle(text: str, start_chars: int = 6, end_chars: int = 4) -> str:
    """``"So1aNaAddr...xyz9"`` style shortening of long identifiers."""
    if not text or len(text) <= start_chars + end_chars:
        return text or ""
    return f"{text[:start_chars]}...{text[-end_chars:]}"


def format_date(value: Optional[str]) -> str:
    if not value:
        return "N/A"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return "Invalid date"
    return parsed.strftime("%b %d, %Y %H:%M")


def format_kyc_status(status: Optional[str]) -> str:
    return {
        "approved": "✅ Approved",
        "pending": "⏳ Pending",
        "rejected": "❌ Rejected",
    }.get((status or "").lower(), "❓ Not Started")


def format_status(status: Optional[str]) -> str:
    icon = {
        "COMPLETED": "✅",
        "SUCCESS": "✅",
        "PENDING": "⏳",
        "PROCESSING": "⏳",
        "FAILED": "❌",
    }.get((status or "").upper(), "❓")
    return f"{icon} {status or 'unknown'}"


# --------------------------------------------------------------------------- #
# Confirmation summaries
# --------------------------------------------------------------------------- #

def format_send_summary(draft: Draft) -> str:
    lines = [
        "📤 *Transfer Confirmation*\n",
        f"To: {md(draft.recipient)}",
        f"Amount: {md(draft.amount)} USDC",
    ]
    if draft.description:
        lines.append(f"Description: {md(draft.description)}")
    lines.append("\nPlease confirm this transfer:")
    return "\n".join(lines)


def format_wallet_withdraw_summary(draft: Draft) -> str:
    return (
        f"🔑 *Withdrawal Confirmation*\n\n"
        f"To: `{draft.address}`\n"
        f"Amount: {md(draft.amount)} USDC\n"
        f"Network: {md(draft.network)}\n\n"
        f"Please confirm this withdrawal:"
    )


def format_bank_withdraw_summary(draft: Draft) -> str:
    return (
        f"🏦 *Bank Withdrawal Confirmation*\n\n"
        f"Amount: {md(draft.amount)} USDC\n\n"
        f"Note: The funds will be sent to your bank account on file.\n\n"
        f"Please confirm this withdrawal:"
    )


# --------------------------------------------------------------------------- #
# Results
# --------------------------------------------------------------------------- #

def format_send_result(draft: Draft, record: TransferRecord) -> str:
    return (
        f"✅ *Transfer Successful!*\n\n"
        f"Amount: {md(draft.amount)} USDC\n"
        f"Recipient: {md(draft.recipient)}\n\n"
        f"Transaction ID: `{record.id or 'N/A'}`"
    )


def format_wallet_withdraw_result(draft: Draft, record: TransferRecord) -> str:
    return (
        f"✅ *Withdrawal Initiated!*\n\n"
        f"Amount: {md(draft.amount)} USDC\n"
        f"To: `{draft.address}`\n"
        f"Network: {md(draft.network)}\n\n"
        f"Transaction ID: `{record.id or 'N/A'}`"
    )


def format_bank_withdraw_result(draft: Draft, record: TransferRecord) -> str:
    return (
        f"✅ *Bank Withdrawal Initiated!*\n\n"
        f"Amount: {md(draft.amount)} USDC\n\n"
        f"Your funds will be transferred to your bank account on file. "
        f"This process typically takes 1-3 business days.\n\n"
        f"Transaction ID: `{record.id or 'N/A'}`"
    )


# --------------------------------------------------------------------------- #
# Account and wallets
# --------------------------------------------------------------------------- #

def format_welcome(profile: Optional[UserProfile]) -> str:
    name = (profile.first_name or profile.display_name) if profile else "there"
    return (
        f"🎉 Welcome, {name}! You are now logged in.\n\n"
        "You can use the following commands:\n"
        "/profile - View your account details\n"
        "/wallets - View your wallets\n"
        "/balance - Check your balance\n"
        "/send - Send funds\n"
        "/withdraw - Withdraw funds\n"
        "/history - View transaction history"
    )


def format_profile(profile: UserProfile, kyc_status: Optional[str] = None) -> str:
    kyc_status = kyc_status or profile.kyc_status
    name = " ".join(part for part in (profile.first_name, profile.last_name) if part) or "N/A"
    message = (
        f"👤 *Account Profile*\n\n"
        f"*Name:* {md(name)}\n"
        f"*Email:* {md(profile.email or 'N/A')}\n"
        f"*Organization:* {md(profile.organization_name or 'Personal')}\n"
        f"*KYC Status:* {format_kyc_status(kyc_status)}\n"
        f"*KYB Status:* {format_kyc_status(profile.kyb_status)}\n"
    )
    if (kyc_status or "").lower() != "approved":
        message += "\n⚠️ Complete KYC verification to unlock all features."
    return message


def format_balances(balances: List[WalletBalance]) -> str:
    lines = ["💰 *Your Wallet Balances*\n"]
    for balance in balances:
        line = f"{md(balance.label)}: {md(balance.balance)} {md(balance.symbol)}"
        if balance.is_default:
            line += " (Default)"
        lines.append(line)
    lines.append("\nUse /wallets to see all your wallets.")
    lines.append("Use /setdefaultwallet to change your default wallet.")
    return "\n".join(lines)


def format_wallets(wallets: List[Wallet]) -> str:
    blocks = []
    for wallet in wallets:
        block = f"*{md(wallet.label)}*\nAddress: `{wallet.address or 'N/A'}`"
        if wallet.is_default:
            block += "\n✅ Default Wallet"
        blocks.append(block)
    return "👛 *Your Wallets*\n\n" + "\n\n".join(blocks)


# --------------------------------------------------------------------------- #
# History
# --------------------------------------------------------------------------- #

def format_history(paginated: PaginatedData) -> str:
    """
    Format one page of transfers.

    Args:
        paginated: Page of ``TransferRecord`` items

    Returns:
        Markdown message
    """
    lines = ["📜 *Transaction History*\n"]

    for index, record in enumerate(paginated.items, start=paginated.start_index + 1):
        kind = (record.type or "transfer").replace("_", " ").title()
        lines.append(f"*{index}. {md(kind)}*")
        lines.append(f"💰 Amount: {md(record.amount or '0')} {md(record.currency)}")
        lines.append(f"📅 Date: {format_date(record.created_at)}")
        lines.append(f"🔄 Status: {md(format_status(record.status))}")
        if record.recipient:
            lines.append(f"👤 Recipient: {md(truncate_middle(record.recipient, 10, 6))}")
        elif record.sender:
            lines.append(f"👤 Sender: {md(truncate_middle(record.sender, 10, 6))}")
        lines.append("")

    if paginated.total_pages > 1:
        lines.append(f"Page {paginated.page}/{paginated.total_pages}")

    return "\n".join(lines).rstrip()
