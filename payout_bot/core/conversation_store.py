"""
Per-chat conversation state and draft storage.

The bot's ``ConversationHandler``s route updates to the handler of a chat's
current state; this store keeps the matching draft (the fields collected so
far) and records the state itself so it can be inspected.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """States of the login, send and withdraw flows."""

    IDLE = "idle"
    AWAITING_EMAIL = "awaiting_email"
    AWAITING_OTP = "awaiting_otp"
    AWAITING_RECIPIENT = "awaiting_recipient"
    AWAITING_AMOUNT = "awaiting_amount"
    AWAITING_DESCRIPTION = "awaiting_description"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_WALLET_ADDRESS = "awaiting_wallet_address"
    AWAITING_NETWORK = "awaiting_network"
    AWAITING_BANK_CONFIRMATION = "awaiting_bank_confirmation"


class FlowKind(str, Enum):
    """Which flow a draft belongs to."""

    LOGIN = "login"
    SEND = "send"
    WALLET_WITHDRAW = "wallet_withdraw"
    BANK_WITHDRAW = "bank_withdraw"


@dataclass
class Draft:
    """Fields collected for a flow that has not been submitted yet."""

    kind: FlowKind
    state: ConversationState
    email: Optional[str] = None
    recipient: Optional[str] = None
    address: Optional[str] = None
    amount: Optional[str] = None
    description: str = ""
    network: Optional[str] = None
    started_at: float = field(default_factory=time.time)

    @property
    def destination(self) -> Optional[str]:
        """Recipient email for transfers, address for wallet withdrawals."""
        return self.recipient if self.kind == FlowKind.SEND else self.address


class ConversationStore:
    """
    Chat id -> Draft map.

    A chat without a draft is ``IDLE``. Starting a flow replaces whatever
    draft the chat had, so a chat never has two flows in progress.
    """

    def __init__(self):
        self._drafts: Dict[int, Draft] = {}

    def begin(self, chat_id: int, kind: FlowKind, state: ConversationState) -> Draft:
        previous = self._drafts.get(chat_id)
        if previous is not None:
            logger.info(f"Chat {chat_id}: replacing {previous.kind.value} draft with {kind.value}")
        draft = Draft(kind=kind, state=state)
        self._drafts[chat_id] = draft
        return draft

    def get(self, chat_id: int) -> Optional[Draft]:
        return self._drafts.get(chat_id)

    def state_of(self, chat_id: int) -> ConversationState:
        draft = self._drafts.get(chat_id)
        return draft.state if draft else ConversationState.IDLE

    def advance(self, chat_id: int, state: ConversationState) -> ConversationState:
        """
        Move a chat's draft to a new state.

        Returns:
            The new state (so handlers can ``return store.advance(...)``).

        Raises:
            KeyError: The chat has no draft.
        """
        draft = self._drafts[chat_id]
        logger.debug(f"Chat {chat_id}: {draft.state.value} -> {state.value}")
        draft.state = state
        return state

    def take(self, chat_id: int, kind: Optional[FlowKind] = None) -> Optional[Draft]:
        """
        Remove and return a chat's draft.

        When ``kind`` is given the draft is only taken if it belongs to that
        flow; a draft of another flow stays in place and None is returned.
        """
        draft = self._drafts.get(chat_id)
        if draft is None:
            return None
        if kind is not None and draft.kind != kind:
            return None
        del self._drafts[chat_id]
        return draft

    def discard(self, chat_id: int) -> bool:
        """Drop a chat's draft. Returns True if there was one."""
        return self._drafts.pop(chat_id, None) is not None

    def active_chats(self) -> List[int]:
        return list(self._drafts)

