"""Tests for the plain command handlers and the callback router."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from payout_bot.bot.handlers.account_handler import logout_command, profile_command
from payout_bot.bot.handlers.transfer_handler import history_command, history_page_callback, withdraw_command
from payout_bot.bot.handlers.wallet_handler import balance_command, default_wallet_callback, set_default_wallet_command
from payout_bot.bot.main import handle_callback_query
from payout_bot.core.errors import ApiError, ApiResult, ErrorKind
from payout_bot.models.profile import KycRecord, UserProfile
from payout_bot.models.session import ChatSession
from payout_bot.models.transfer import TransferPage, TransferRecord
from payout_bot.models.wallet import Wallet, WalletBalance
from payout_bot.services.auth_service import AuthService
from payout_bot.services.transfer_service import TransferService

from conftest import make_callback_update, make_context, make_message_update, replies

CHAT_ID = 400


@pytest.fixture
def gateway():
    return MagicMock()


@pytest.fixture
def auth_service():
    service = MagicMock(spec=AuthService)
    service.require_session = AsyncMock(return_value=ApiResult.ok(ChatSession(chat_id=CHAT_ID, token="tok")))
    service.recover_session = AsyncMock(return_value=True)
    service.logout = AsyncMock(return_value=True)
    return service


@pytest.fixture
def context(gateway, auth_service, conversation_store):
    return make_context(
        gateway=gateway,
        auth_service=auth_service,
        conversation_store=conversation_store,
        transfer_service=TransferService(gateway, auth_service),
        config={"history": {"page_size": 10}},
    )


@pytest.mark.asyncio
async def test_logout(context, auth_service):
    update = make_message_update(CHAT_ID, "/logout")
    await logout_command(update, context)
    assert "logged out" in replies(update)[0]

    auth_service.logout.return_value = False
    update = make_message_update(CHAT_ID, "/logout")
    await logout_command(update, context)
    assert "not logged in" in replies(update)[0]


@pytest.mark.asyncio
async def test_profile_falls_back_to_kyc_records(context, gateway):
    gateway.get_profile = AsyncMock(return_value=ApiResult.ok(UserProfile(first_name="Ada", email="a@b.com")))
    gateway.get_kyc_status = AsyncMock(return_value=ApiResult.ok([KycRecord(id="k1", status="approved")]))
    update = make_message_update(CHAT_ID, "/profile")

    await profile_command(update, context)

    text = replies(update)[0]
    assert "✅ Approved" in text
    assert "Complete KYC" not in text


@pytest.mark.asyncio
async def test_balance_marks_default(context, gateway):
    gateway.get_balances = AsyncMock(return_value=ApiResult.ok([
        WalletBalance(wallet_id="w1", name="Main", network="solana", balance="12.5", is_default=True),
        WalletBalance(wallet_id="w2", name="Spare", network="ethereum", balance="0"),
    ]))
    update = make_message_update(CHAT_ID, "/balance")

    await balance_command(update, context)

    text = replies(update)[0]
    assert "Main (solana): 12.5 USDC (Default)" in text
    assert "Spare (ethereum): 0 USDC\n" in text


@pytest.mark.asyncio
async def test_auth_error_renews_session(context, gateway, auth_service):
    gateway.get_balances = AsyncMock(return_value=ApiResult.fail(ApiError(ErrorKind.AUTHENTICATION, "Unauthorized", 401)))
    update = make_message_update(CHAT_ID, "/balance")

    await balance_command(update, context)

    auth_service.recover_session.assert_awaited_once_with(CHAT_ID)
    assert "repeat the command" in replies(update)[0]


@pytest.mark.asyncio
async def test_set_default_wallet_buttons(context, gateway):
    gateway.list_wallets = AsyncMock(return_value=ApiResult.ok([Wallet(id="w1", name="Main", network="solana")]))
    update = make_message_update(CHAT_ID, "/setdefaultwallet")

    await set_default_wallet_command(update, context)

    keyboard = update.effective_message.reply_text.await_args.kwargs["reply_markup"]
    assert keyboard.inline_keyboard[0][0].callback_data == "default_wallet:w1"


@pytest.mark.asyncio
async def test_default_wallet_callback(context, gateway):
    gateway.set_default_wallet = AsyncMock(return_value=ApiResult.ok(Wallet(id="w1", name="Main", network="solana")))
    update = make_callback_update(CHAT_ID, "default_wallet:w1")

    await default_wallet_callback(update, context)

    gateway.set_default_wallet.assert_awaited_once_with("tok", "w1")
    assert "Main (solana)" in update.callback_query.edit_message_text.await_args.args[0]
    assert update.callback_query.edit_message_text.await_args.kwargs["parse_mode"] == "Markdown"


@pytest.mark.asyncio
async def test_withdraw_shows_methods(context):
    update = make_message_update(CHAT_ID, "/withdraw")

    await withdraw_command(update, context)

    keyboard = update.effective_message.reply_text.await_args.kwargs["reply_markup"]
    data = [button.callback_data for row in keyboard.inline_keyboard for button in row]
    assert data == ["withdraw_bank", "withdraw_wallet"]


@pytest.mark.asyncio
async def test_history_first_page_and_navigation(context, gateway):
    gateway.get_history = AsyncMock(return_value=ApiResult.ok(
        TransferPage(items=[TransferRecord(id="t1", amount="3")], page=1, limit=10, count=15, has_more=True)
    ))
    update = make_message_update(CHAT_ID, "/history")

    await history_command(update, context)

    gateway.get_history.assert_awaited_once_with("tok", page=1, limit=10)
    keyboard = update.effective_message.reply_text.await_args.kwargs["reply_markup"]
    assert keyboard.inline_keyboard[0][-1].callback_data == "history_page_2"

    gateway.get_history.reset_mock()
    callback = make_callback_update(CHAT_ID, "history_page_2")
    await history_page_callback(callback, context)
    gateway.get_history.assert_awaited_once_with("tok", page=2, limit=10)
    callback.callback_query.edit_message_text.assert_awaited_once()


@pytest.mark.asyncio
async def test_empty_history(context, gateway):
    gateway.get_history = AsyncMock(return_value=ApiResult.ok(TransferPage()))
    update = make_message_update(CHAT_ID, "/history")

    await history_command(update, context)

    assert "don't have any transactions" in replies(update)[0]


@pytest.mark.asyncio
async def test_router_answers_stale_flow_buttons(context):
    update = make_callback_update(CHAT_ID, "confirm_send")

    await handle_callback_query(update, context)

    assert "No pending request" in replies(update)[0]


@pytest.mark.asyncio
async def test_router_noop_and_unknown(context):
    noop = make_callback_update(CHAT_ID, "noop")
    await handle_callback_query(noop, context)
    noop.callback_query.answer.assert_awaited_once_with()

    unknown = make_callback_update(CHAT_ID, "something_else")
    await handle_callback_query(unknown, context)
    unknown.callback_query.answer.assert_awaited_once_with("Unknown action")
