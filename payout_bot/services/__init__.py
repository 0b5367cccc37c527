"""
Services layer for payout-bot.

Business logic shared by the Telegram handlers: talking to the payments
API, session lifecycle, transfer submission and deposit notifications.
"""

from payout_bot.services.payments_gateway import PaymentsGateway
from payout_bot.services.auth_service import AuthService, LoginResult
from payout_bot.services.transfer_service import TransferService
from payout_bot.services.notification_service import NotificationRelay

__all__ = [
    'PaymentsGateway',
    'AuthService',
    'LoginResult',
    'TransferService',
    'NotificationRelay',
]
