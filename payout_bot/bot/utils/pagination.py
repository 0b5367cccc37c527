"""
Pagination utility for Telegram bot list displays.

The payments API pages its lists itself; this module turns the page
metadata it returns into navigation state and inline keyboards.
"""

from typing import TypeVar, Generic, List, Optional
from dataclasses import dataclass
from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from payout_bot.bot.keyboards import NOOP
from payout_bot.models.transfer import TransferPage

T = TypeVar('T')


@dataclass
class PaginatedData(Generic[T]):
    """
    Container for one page of a server-paged list.
    """

    items: List[T]
    """Items on current page."""

    page: int
    """Current page number (1-indexed)."""

    page_size: int
    """Items per page."""

    total_items: int
    """Total items across all pages (0 when the server does not say)."""

    total_pages: int
    """Total pages known so far."""

    has_next: bool
    """True if there are more pages after current."""

    has_prev: bool
    """True if there are pages before current."""

    @property
    def start_index(self) -> int:
        """0-based index of the first item on current page."""
        return (self.page - 1) * self.page_size

    def is_empty(self) -> bool:
        return not self.items and self.page == 1

    def is_single_page(self) -> bool:
        return not self.has_next and not self.has_prev


class PaginationHelper:
    """
    Utility class for paginated lists in Telegram bot.

    No instance state required - all methods are static.
    """

    @staticmethod
    def parse_page(callback_data: str, prefix: str) -> int:
        """
        Read the page number from ``<prefix>_<n>`` callback data.

        Raises:
            ValueError: If the data does not carry a page number >= 1.
        """
        expected = f"{prefix}_"
        if not callback_data.startswith(expected):
            raise ValueError(f"Unexpected callback data: {callback_data}")
        page = int(callback_data[len(expected):])
        if page < 1:
            raise ValueError("page must be >= 1")
        return page

    @staticmethod
    def from_page(transfer_page: TransferPage) -> PaginatedData:
        """
        Wrap a ``TransferPage`` returned by the API.

        Args:
            transfer_page: Page with its server-side metadata.

        Returns:
            PaginatedData for the page.
        """
        page = transfer_page.page
        total_pages = max(transfer_page.total_pages, page + 1 if transfer_page.has_more else page)

        return PaginatedData(
            items=list(transfer_page.items),
            page=page,
            page_size=transfer_page.limit,
            total_items=transfer_page.count,
            total_pages=total_pages,
            has_next=transfer_page.has_more,
            has_prev=(page > 1)
        )

    @staticmethod
    def create_pagination_keyboard(
        paginated_data: PaginatedData,
        callback_prefix: str,
        additional_buttons: Optional[List[List[InlineKeyboardButton]]] = None
    ) -> InlineKeyboardMarkup:
        """
        Create inline keyboard with pagination navigation.

        Generates Previous / Page X/Y / Next buttons.
        Hides pagination if only one page or empty list.

        Args:
            paginated_data: PaginatedData with pagination metadata.
            callback_prefix: Prefix for callback_data (e.g., "history_page" -> "history_page_2").
            additional_buttons: Optional additional button rows to append below pagination.

        Returns:
            InlineKeyboardMarkup with pagination buttons (and additional buttons if provided).
        """
        buttons = []

        if not paginated_data.is_single_page():
            nav_buttons = []

            if paginated_data.has_prev:
                nav_buttons.append(
                    InlineKeyboardButton(
                        "⬅️ Previous",
                        callback_data=f"{callback_prefix}_{paginated_data.page - 1}"
                    )
                )

            # Page indicator (not clickable)
            nav_buttons.append(
                InlineKeyboardButton(
                    f"Page {paginated_data.page}/{paginated_data.total_pages}",
                    callback_data=NOOP
                )
            )

            if paginated_data.has_next:
                nav_buttons.append(
                    InlineKeyboardButton(
                        "Next ➡️",
                        callback_data=f"{callback_prefix}_{paginated_data.page + 1}"
                    )
                )

            buttons.append(nav_buttons)

        if additional_buttons:
            buttons.extend(additional_buttons)

        return InlineKeyboardMarkup(buttons)
