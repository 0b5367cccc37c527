"""
Payout Bot: Telegram client for a payments API

Lets a Telegram user log in with an email OTP, inspect wallets and balances,
send funds by email, withdraw to an external wallet or a bank account, and
receive deposit notifications.
"""

__version__ = "0.1.0"
