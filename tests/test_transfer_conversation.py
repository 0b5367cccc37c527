"""Tests for the send and withdraw conversations."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.ext import ConversationHandler

from payout_bot.bot.conversations.transfer import (
    cancel_callback,
    confirm_bank_withdraw_callback,
    confirm_send_callback,
    confirm_wallet_withdraw_callback,
    network_callback,
    receive_address,
    receive_amount,
    receive_description,
    receive_recipient,
    send_command,
    transfer_timeout,
    withdraw_method_callback
)
from payout_bot.core.conversation_store import ConversationState, FlowKind
from payout_bot.core.errors import ApiError, ApiResult, ErrorKind
from payout_bot.models.session import ChatSession
from payout_bot.models.transfer import TransferRecord
from payout_bot.models.wallet import Wallet
from payout_bot.services.auth_service import AuthService
from payout_bot.services.transfer_service import TransferService

from conftest import make_callback_update, make_context, make_message_update, replies

CHAT_ID = 200
ADDRESS = "So1anaWa11etAddre55000000000000000000"


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.get_default_wallet = AsyncMock(return_value=ApiResult.ok(Wallet(id="w1", network="solana")))
    gateway.send_funds = AsyncMock(return_value=ApiResult.ok(TransferRecord(id="tx-1")))
    gateway.withdraw_to_wallet = AsyncMock(return_value=ApiResult.ok(TransferRecord(id="tx-2")))
    gateway.withdraw_to_bank = AsyncMock(return_value=ApiResult.ok(TransferRecord(id="tx-3")))
    return gateway


@pytest.fixture
def auth_service():
    service = MagicMock(spec=AuthService)
    service.require_session = AsyncMock(
        return_value=ApiResult.ok(ChatSession(chat_id=CHAT_ID, token="tok", organization_id="org-1"))
    )
    service.recover_session = AsyncMock(return_value=False)
    return service


@pytest.fixture
def context(gateway, auth_service, conversation_store):
    return make_context(
        gateway=gateway,
        auth_service=auth_service,
        conversation_store=conversation_store,
        transfer_service=TransferService(gateway, auth_service),
    )


async def send_text(handler, context, text):
    update = make_message_update(CHAT_ID, text)
    state = await handler(update, context)
    return state, update


async def press(handler, context, data):
    update = make_callback_update(CHAT_ID, data)
    state = await handler(update, context)
    return state, update


# --------------------------------------------------------------------------- #
# Send
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_send_flow_end_to_end(context, gateway, conversation_store):
    state, _ = await send_text(send_command, context, "/send")
    assert state == ConversationState.AWAITING_RECIPIENT

    state, _ = await send_text(receive_recipient, context, "a@b.com")
    assert state == ConversationState.AWAITING_AMOUNT

    state, _ = await send_text(receive_amount, context, "10.5")
    assert state == ConversationState.AWAITING_DESCRIPTION

    state, update = await send_text(receive_description, context, "skip")
    assert state == ConversationState.AWAITING_CONFIRMATION
    summary = replies(update)[0]
    assert "a@b.com" in summary
    assert "10.5 USDC" in summary
    assert "Description" not in summary
    assert conversation_store.state_of(CHAT_ID) == ConversationState.AWAITING_CONFIRMATION

    state, update = await press(confirm_send_callback, context, "confirm_send")
    assert state == ConversationHandler.END
    gateway.send_funds.assert_awaited_once_with(
        "tok", recipient="a@b.com", amount="10.5", description="", wallet_id="w1"
    )
    assert "tx-1" in replies(update)[-1]
    assert conversation_store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_duplicate_confirm_never_submits_twice(context, gateway, conversation_store):
    draft = conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_CONFIRMATION)
    draft.recipient, draft.amount = "a@b.com", "1"

    await press(confirm_send_callback, context, "confirm_send")
    state, update = await press(confirm_send_callback, context, "confirm_send")

    assert state == ConversationHandler.END
    assert "No pending request" in replies(update)[0]
    assert gateway.send_funds.await_count == 1


@pytest.mark.asyncio
async def test_send_requires_login(context, auth_service, conversation_store):
    auth_service.require_session.return_value = ApiResult.fail(ApiError.not_authenticated())

    state, update = await send_text(send_command, context, "/send")

    assert state == ConversationHandler.END
    assert "login" in replies(update)[0].lower()
    assert conversation_store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_invalid_recipient_reprompts(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_RECIPIENT)

    state, update = await send_text(receive_recipient, context, "alice")

    assert state == ConversationState.AWAITING_RECIPIENT
    assert conversation_store.state_of(CHAT_ID) == ConversationState.AWAITING_RECIPIENT
    assert "valid email" in replies(update)[0]


@pytest.mark.asyncio
async def test_amount_prompt_shows_recipient_as_typed(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_RECIPIENT)

    _, update = await send_text(receive_recipient, context, "first_last@example.com")

    assert replies(update)[0] == "Please enter the amount in USDC to send to first_last@example.com:"


@pytest.mark.parametrize("amount", ["0", "-1", "abc", "1.1234567"])
@pytest.mark.asyncio
async def test_invalid_amount_reprompts(context, conversation_store, amount):
    conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_AMOUNT)

    state, _ = await send_text(receive_amount, context, amount)

    assert state == ConversationState.AWAITING_AMOUNT
    assert conversation_store.get(CHAT_ID).amount is None


@pytest.mark.asyncio
async def test_missing_default_wallet_aborts_send(context, gateway, conversation_store):
    gateway.get_default_wallet.return_value = ApiResult.fail(ApiError(ErrorKind.REMOTE, "No default wallet", 404))
    draft = conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_CONFIRMATION)
    draft.recipient, draft.amount = "a@b.com", "1"

    state, update = await press(confirm_send_callback, context, "confirm_send")

    assert state == ConversationHandler.END
    gateway.send_funds.assert_not_called()
    assert "No default wallet" in replies(update)[-1]
    assert conversation_store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_expired_session_during_submit_triggers_recovery(context, gateway, auth_service, conversation_store):
    gateway.send_funds.return_value = ApiResult.fail(ApiError(ErrorKind.AUTHENTICATION, "Unauthorized", 401))
    draft = conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_CONFIRMATION)
    draft.recipient, draft.amount = "a@b.com", "1"

    _, update = await press(confirm_send_callback, context, "confirm_send")

    auth_service.recover_session.assert_awaited_once_with(CHAT_ID)
    assert "/login" in replies(update)[-1]


@pytest.mark.asyncio
async def test_cancel_discards_draft(context, gateway, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_CONFIRMATION)

    state, update = await press(cancel_callback, context, "cancel_send")

    assert state == ConversationHandler.END
    assert conversation_store.get(CHAT_ID) is None
    assert "canceled" in replies(update)[0]
    gateway.send_funds.assert_not_called()


# --------------------------------------------------------------------------- #
# Withdrawals
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_wallet_withdraw_flow(context, gateway, conversation_store):
    state, _ = await press(withdraw_method_callback, context, "withdraw_wallet")
    assert state == ConversationState.AWAITING_WALLET_ADDRESS

    state, _ = await send_text(receive_address, context, "short")
    assert state == ConversationState.AWAITING_WALLET_ADDRESS

    state, _ = await send_text(receive_address, context, ADDRESS)
    assert state == ConversationState.AWAITING_AMOUNT

    state, _ = await send_text(receive_amount, context, "25")
    assert state == ConversationState.AWAITING_NETWORK

    state, update = await press(network_callback, context, "network_ethereum")
    assert state == ConversationState.AWAITING_CONFIRMATION
    assert "ethereum" in replies(update)[0]

    state, update = await press(confirm_wallet_withdraw_callback, context, "confirm_wallet_withdraw")
    assert state == ConversationHandler.END
    gateway.withdraw_to_wallet.assert_awaited_once_with(
        "tok", address=ADDRESS, amount="25", network="ethereum"
    )
    assert "tx-2" in replies(update)[-1]


@pytest.mark.asyncio
async def test_unknown_network_reprompts(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.WALLET_WITHDRAW, ConversationState.AWAITING_NETWORK)

    state, _ = await press(network_callback, context, "network_dogecoin")

    assert state == ConversationState.AWAITING_NETWORK
    assert conversation_store.get(CHAT_ID).network is None


@pytest.mark.asyncio
async def test_bank_withdraw_flow(context, gateway, conversation_store):
    state, _ = await press(withdraw_method_callback, context, "withdraw_bank")
    assert state == ConversationState.AWAITING_AMOUNT

    state, update = await send_text(receive_amount, context, "100")
    assert state == ConversationState.AWAITING_BANK_CONFIRMATION
    assert "bank account on file" in replies(update)[0]

    state, update = await press(confirm_bank_withdraw_callback, context, "confirm_bank_withdraw")
    assert state == ConversationHandler.END
    gateway.withdraw_to_bank.assert_awaited_once_with("tok", amount="100")
    assert "tx-3" in replies(update)[-1]


@pytest.mark.asyncio
async def test_confirm_of_another_flow_is_not_submitted(context, gateway, conversation_store):
    draft = conversation_store.begin(CHAT_ID, FlowKind.BANK_WITHDRAW, ConversationState.AWAITING_BANK_CONFIRMATION)
    draft.amount = "5"

    _, update = await press(confirm_send_callback, context, "confirm_send")

    assert "No pending request" in replies(update)[0]
    assert conversation_store.get(CHAT_ID).kind == FlowKind.BANK_WITHDRAW
    gateway.send_funds.assert_not_called()


@pytest.mark.asyncio
async def test_timeout_discards_transfer_draft(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.WALLET_WITHDRAW, ConversationState.AWAITING_NETWORK)

    await transfer_timeout(make_message_update(CHAT_ID, "x"), context)

    assert conversation_store.get(CHAT_ID) is None
    assert "timed out" in context.bot.send_message.await_args.kwargs["text"]
