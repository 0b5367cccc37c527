"""
Update filter that ties a conversation's text handlers to its own drafts.

Login and transfer conversations are independent ``ConversationHandler``s.
Starting one flow replaces the chat's draft in the ``ConversationStore``,
so a conversation whose draft was replaced must stop consuming text.
"""

from telegram import Update
from telegram.ext import filters

from payout_bot.core.conversation_store import ConversationStore, FlowKind


class ActiveFlowFilter(filters.UpdateFilter):
    """Passes updates from chats whose current draft is one of ``kinds``."""

    def __init__(self, store: ConversationStore, *kinds: FlowKind):
        super().__init__(name=f"ActiveFlowFilter({', '.join(kind.value for kind in kinds)})")
        self.store = store
        self.kinds = frozenset(kinds)

    def filter(self, update: Update) -> bool:
        if update.effective_chat is None:
            return False
        draft = self.store.get(update.effective_chat.id)
        return draft is not None and draft.kind in self.kinds
