"""
Transfer submission service.

Turns a confirmed ``Draft`` into exactly one payments API call. The
draft must already have been taken out of the ``ConversationStore`` by
the caller, so a second tap on the same confirm button finds nothing to
submit.
"""

import logging

from payout_bot.core.conversation_store import Draft, FlowKind
from payout_bot.core.errors import ApiError, ApiResult
from payout_bot.services.auth_service import AuthService
from payout_bot.services.payments_gateway import PaymentsGateway

logger = logging.getLogger(__name__)


class TransferService:
    """
    Service for sends and withdrawals.

    Responsibilities:
    1. Re-check that the chat is still logged in
    2. Resolve the funding wallet of email transfers
    3. Dispatch the draft to the matching gateway call
    """

    def __init__(self, gateway: PaymentsGateway, auth_service: AuthService):
        self.gateway = gateway
        self.auth_service = auth_service

    async def submit(self, chat_id: int, draft: Draft) -> ApiResult:
        """
        Submit a confirmed draft.

        Args:
            chat_id: Telegram chat id
            draft: Draft removed from the conversation store

        Returns:
            ApiResult with the created ``TransferRecord``
        """
        session_result = await self.auth_service.require_session(chat_id)
        if not session_result.success:
            return session_result
        token = session_result.data.token

        if draft.kind == FlowKind.SEND:
            wallet_result = await self.gateway.get_default_wallet(token)
            if not wallet_result.success:
                logger.warning(f"Chat {chat_id}: no default wallet for send: {wallet_result.error_message}")
                return wallet_result

            result = await self.gateway.send_funds(
                token,
                recipient=draft.recipient,
                amount=draft.amount,
                description=draft.description,
                wallet_id=wallet_result.data.id,
            )

        elif draft.kind == FlowKind.WALLET_WITHDRAW:
            result = await self.gateway.withdraw_to_wallet(
                token,
                address=draft.address,
                amount=draft.amount,
                network=draft.network,
            )

        elif draft.kind == FlowKind.BANK_WITHDRAW:
            result = await self.gateway.withdraw_to_bank(token, amount=draft.amount)

        else:
            raise ValueError(f"Cannot submit a {draft.kind.value} draft")

        if result.success:
            logger.info(f"Chat {chat_id}: {draft.kind.value} submitted, id={result.data.id or 'n/a'}")
        else:
            logger.warning(f"Chat {chat_id}: {draft.kind.value} failed: {result.error_message}")
        return result

    async def get_history(self, chat_id: int, page: int = 1, limit: int = 10) -> ApiResult:
        """
        Fetch one page of the chat's transfer history.

        Returns:
            ApiResult with a ``TransferPage``
        """
        if page < 1:
            return ApiResult.fail(ApiError.validation("Page must be 1 or greater."))

        session_result = await self.auth_service.require_session(chat_id)
        if not session_result.success:
            return session_result
        return await self.gateway.get_history(session_result.data.token, page=page, limit=limit)
