"""
Data models for payout-bot.

``ChatSession`` and ``AuthToken`` are internal records; the remaining
models are pydantic projections of payments API payloads.
"""

from .session import ChatSession
from .auth import AuthToken
from .wallet import Wallet, WalletBalance
from .profile import UserProfile, KycRecord
from .transfer import TransferRecord, TransferPage

__all__ = [
    "ChatSession",
    "AuthToken",
    "Wallet",
    "WalletBalance",
    "UserProfile",
    "KycRecord",
    "TransferRecord",
    "TransferPage",
]
