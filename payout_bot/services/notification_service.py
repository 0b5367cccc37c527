"""
Deposit notifications over Pusher.

Each logged-in chat gets its own Pusher connection subscribed to the private
channel of its organization (``private-org-<organization_id>``). Pysher runs
the websocket in a background thread, so its callbacks hand their work back
to the bot's event loop with ``asyncio.run_coroutine_threadsafe``.

Private channels need a signature from the payments API. It is requested on
every ``pusher:connection_established`` (including reconnects) with the
chat's current session token, so a refreshed token is picked up.
"""

import asyncio
import json
import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import pysher
from telegram import Bot
from telegram.error import TelegramError
from telegram.helpers import escape_markdown

from payout_bot.core.session_store import SessionStore
from payout_bot.services.payments_gateway import PaymentsGateway

logger = logging.getLogger(__name__)

CONNECTION_ESTABLISHED_EVENT = "pusher:connection_established"
DEPOSIT_EVENT = "deposit"


def channel_name_for(organization_id: str) -> str:
    return f"private-org-{organization_id}"


def format_deposit_message(payload: Dict[str, Any]) -> str:
    amount = escape_markdown(str(payload.get("amount") or "Unknown amount"), version=1)
    currency = escape_markdown(str(payload.get("currency") or "USDC"), version=1)
    network = escape_markdown(str(payload.get("network") or "Solana"), version=1)
    return (
        f"💰 *New Deposit Received*\n\n"
        f"*Amount:* {amount} {currency}\n"
        f"*Network:* {network}\n"
        f"*Status:* Confirmed"
    )


@dataclass
class Subscription:
    """A chat's Pusher client and the channel it listens on."""

    client: Any
    channel_name: str


class NotificationRelay:
    """
    Forward deposit events from Pusher to Telegram chats.

    The relay is disabled (every call is a no-op) when no Pusher key is
    configured.
    """

    def __init__(
        self,
        gateway: PaymentsGateway,
        session_store: SessionStore,
        bot: Bot,
        key: str,
        cluster: str = "ap1",
        pusher_factory: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize the relay.

        Args:
            gateway: Used to authorize private channels
            session_store: Source of the chats' organization ids and tokens
            bot: Telegram bot used to deliver the notifications
            key: Pusher application key
            cluster: Pusher cluster
            pusher_factory: Builds a Pusher client from ``(key, cluster=...)``;
                defaults to ``pysher.Pusher``
        """
        self.gateway = gateway
        self.session_store = session_store
        self.bot = bot
        self.key = key
        self.cluster = cluster
        self.pusher_factory = pusher_factory or pysher.Pusher

        self._subscriptions: Dict[int, Subscription] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        if not key:
            logger.warning("Pusher key not configured, deposit notifications are disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.key)

    def is_subscribed(self, chat_id: int) -> bool:
        return chat_id in self._subscriptions

    async def subscribe(self, chat_id: int) -> bool:
        """
        Start relaying deposits for a chat.

        Returns:
            True if the chat is subscribed after the call.
        """
        if not self.enabled:
            return False

        if chat_id in self._subscriptions:
            logger.info(f"Notifications already active for chat {chat_id}")
            return True

        session = await self.session_store.get(chat_id)
        if session is None or not session.organization_id:
            logger.warning(f"Cannot subscribe chat {chat_id}: not logged in or no organization id")
            return False

        self._loop = asyncio.get_running_loop()
        channel_name = channel_name_for(session.organization_id)

        client = self.pusher_factory(self.key, cluster=self.cluster, secure=True)
        client.connection.bind(
            CONNECTION_ESTABLISHED_EVENT,
            lambda data: self._on_connection_established(chat_id, data),
        )
        self._subscriptions[chat_id] = Subscription(client=client, channel_name=channel_name)
        client.connect()

        logger.info(f"Subscribing chat {chat_id} to {channel_name}")
        return True

    async def unsubscribe(self, chat_id: int) -> None:
        """Stop relaying deposits for a chat. Safe to call repeatedly."""
        subscription = self._subscriptions.pop(chat_id, None)
        if subscription is None:
            return

        client = subscription.client
        try:
            session = await self.session_store.get(chat_id)
            if session is not None and session.organization_id:
                client.unsubscribe(channel_name_for(session.organization_id))
            else:
                logger.warning(f"No session for chat {chat_id}, skipping channel unsubscribe")
            await asyncio.to_thread(client.disconnect)
        except Exception as e:
            logger.error(f"Error cleaning up notifications for chat {chat_id}: {e}", exc_info=True)
        else:
            logger.info(f"Notifications stopped for chat {chat_id}")

    async def close(self) -> None:
        """Disconnect every client (application shutdown)."""
        subscriptions = list(self._subscriptions.items())
        self._subscriptions.clear()
        for chat_id, subscription in subscriptions:
            try:
                await asyncio.to_thread(subscription.client.disconnect)
            except Exception as e:
                logger.error(f"Error disconnecting notifications for chat {chat_id}: {e}")
        if subscriptions:
            logger.info(f"Closed {len(subscriptions)} notification connection(s)")

    # ------------------------------------------------------------------ #
    # Pysher callbacks (websocket thread)
    # ------------------------------------------------------------------ #

    def _on_connection_established(self, chat_id: int, data: Any) -> Optional[Future]:
        socket_id = _parse_event_data(data).get("socket_id")
        if not socket_id:
            logger.error(f"Pusher connection for chat {chat_id} has no socket id")
            return None
        return asyncio.run_coroutine_threadsafe(self._authorize(chat_id, socket_id), self._loop)

    def _on_deposit(self, chat_id: int, data: Any) -> Future:
        return asyncio.run_coroutine_threadsafe(
            self._deliver_deposit(chat_id, _parse_event_data(data)), self._loop
        )

    # ------------------------------------------------------------------ #
    # Event loop side
    # ------------------------------------------------------------------ #

    async def _authorize(self, chat_id: int, socket_id: str) -> bool:
        subscription = self._subscriptions.get(chat_id)
        if subscription is None:
            return False

        session = await self.session_store.get(chat_id)
        if session is None:
            logger.warning(f"Chat {chat_id} logged out before channel authorization")
            return False

        result = await self.gateway.authorize_channel(session.token, socket_id, subscription.channel_name)
        if not result.success:
            logger.error(f"Channel authorization failed for chat {chat_id}: {result.error_message}")
            return False

        channel = subscription.client.subscribe(subscription.channel_name, auth=result.data["auth"])
        channel.bind(DEPOSIT_EVENT, lambda data: self._on_deposit(chat_id, data))
        logger.info(f"Chat {chat_id} subscribed to {subscription.channel_name}")
        return True

    async def _deliver_deposit(self, chat_id: int, payload: Dict[str, Any]) -> None:
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=format_deposit_message(payload),
                parse_mode="Markdown",
            )
        except TelegramError as e:
            logger.error(f"Failed to deliver deposit notification to chat {chat_id}: {e}")
            return
        logger.info(f"Deposit notification sent to chat {chat_id}: {payload.get('amount')} {payload.get('currency')}")


def _parse_event_data(data: Any) -> Dict[str, Any]:
    """Pysher passes event data as the raw JSON string."""
    if isinstance(data, dict):
        return data
    if isinstance(data, (str, bytes)):
        try:
            parsed = json.loads(data)
        except ValueError:
            logger.warning("Ignoring non-JSON Pusher event data")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}
