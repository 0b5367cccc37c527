"""
Telegram bot conversation handlers.

This package contains multi-step conversation flows for the Telegram bot:
login and the send/withdraw flows.
"""

from .login import create_login_conversation
from .transfer import create_transfer_conversation

__all__ = ["create_login_conversation", "create_transfer_conversation"]
