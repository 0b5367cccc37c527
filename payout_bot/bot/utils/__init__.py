"""
Telegram bot utility functions and helpers.

This package contains reusable utilities for the Telegram bot,
such as pagination helpers and message formatting.
"""

from .pagination import PaginationHelper, PaginatedData

__all__ = ["PaginationHelper", "PaginatedData"]
