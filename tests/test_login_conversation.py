"""Tests for the /login conversation."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.ext import ConversationHandler

from payout_bot.bot.conversations.login import (
    cancel_command,
    create_login_conversation,
    login_command,
    login_timeout,
    receive_email,
    receive_otp
)
from payout_bot.core.conversation_store import ConversationState, FlowKind
from payout_bot.core.errors import ApiError, ApiResult, ErrorKind
from payout_bot.models.profile import UserProfile
from payout_bot.models.session import ChatSession
from payout_bot.services.auth_service import AuthService, LoginResult

from conftest import make_context, make_message_update, replies

CHAT_ID = 100


@pytest.fixture
def auth_service():
    service = MagicMock(spec=AuthService)
    service.is_logged_in = AsyncMock(return_value=False)
    return service


@pytest.fixture
def context(auth_service, conversation_store):
    return make_context(auth_service=auth_service, conversation_store=conversation_store)


@pytest.mark.asyncio
async def test_login_asks_for_email(context, conversation_store):
    update = make_message_update(CHAT_ID, "/login")

    state = await login_command(update, context)

    assert state == ConversationState.AWAITING_EMAIL
    assert conversation_store.state_of(CHAT_ID) == ConversationState.AWAITING_EMAIL
    assert "email" in replies(update)[0]


@pytest.mark.asyncio
async def test_login_when_already_logged_in(context, auth_service, conversation_store):
    auth_service.is_logged_in.return_value = True
    update = make_message_update(CHAT_ID, "/login")

    state = await login_command(update, context)

    assert state == ConversationHandler.END
    assert "already logged in" in replies(update)[0]
    assert conversation_store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_valid_email_requests_otp(context, auth_service, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_EMAIL)
    auth_service.request_otp = AsyncMock(return_value=ApiResult.ok({"sid": "sid-1"}))
    update = make_message_update(CHAT_ID, " a@b.com ")

    state = await receive_email(update, context)

    assert state == ConversationState.AWAITING_OTP
    auth_service.request_otp.assert_awaited_once_with("a@b.com")
    assert conversation_store.get(CHAT_ID).email == "a@b.com"


@pytest.mark.asyncio
async def test_otp_prompt_shows_email_as_typed(context, auth_service, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_EMAIL)
    auth_service.request_otp = AsyncMock(return_value=ApiResult.ok({"sid": "sid-1"}))
    update = make_message_update(CHAT_ID, "a_b@c.com")

    await receive_email(update, context)

    assert "OTP sent to a_b@c.com." in replies(update)[0]
    assert "parse_mode" not in update.effective_message.reply_text.await_args.kwargs


@pytest.mark.asyncio
async def test_invalid_email_ends_the_flow(context, auth_service, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_EMAIL)
    auth_service.request_otp = AsyncMock(
        return_value=ApiResult.fail(ApiError.validation("Invalid email format."))
    )
    update = make_message_update(CHAT_ID, "nope")

    state = await receive_email(update, context)

    assert state == ConversationHandler.END
    assert "Invalid email format" in replies(update)[0]
    assert conversation_store.state_of(CHAT_ID) == ConversationState.IDLE


@pytest.mark.asyncio
async def test_otp_request_failure_ends_the_flow(context, auth_service, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_EMAIL)
    auth_service.request_otp = AsyncMock(
        return_value=ApiResult.fail(ApiError(ErrorKind.REMOTE, "Too many requests", 429))
    )
    update = make_message_update(CHAT_ID, "a@b.com")

    state = await receive_email(update, context)

    assert state == ConversationHandler.END
    assert "Failed to send OTP: Too many requests" in replies(update)[0]


@pytest.mark.asyncio
async def test_otp_completes_login(context, auth_service, conversation_store):
    draft = conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_OTP)
    draft.email = "a@b.com"
    auth_service.complete_login = AsyncMock(
        return_value=ApiResult.ok(
            LoginResult(session=ChatSession(chat_id=CHAT_ID, token="tok"), profile=UserProfile(first_name="Ada"))
        )
    )
    update = make_message_update(CHAT_ID, "12 34 56")

    state = await receive_otp(update, context)

    assert state == ConversationHandler.END
    auth_service.complete_login.assert_awaited_once_with(CHAT_ID, "a@b.com", "12 34 56")
    assert any("Welcome, Ada" in text for text in replies(update))
    assert conversation_store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_failed_otp_reports_and_ends(context, auth_service, conversation_store):
    draft = conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_OTP)
    draft.email = "a@b.com"
    auth_service.complete_login = AsyncMock(
        return_value=ApiResult.fail(ApiError(ErrorKind.REMOTE, "The OTP you entered is incorrect.", 400))
    )
    update = make_message_update(CHAT_ID, "000000")

    state = await receive_otp(update, context)

    assert state == ConversationHandler.END
    assert "incorrect" in replies(update)[-1]
    assert conversation_store.get(CHAT_ID) is None


@pytest.mark.asyncio
async def test_timeout_discards_login_draft(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_OTP)
    update = make_message_update(CHAT_ID, "a@b.com")

    await login_timeout(update, context)

    assert conversation_store.get(CHAT_ID) is None
    text = context.bot.send_message.await_args.kwargs["text"]
    assert "OTP verification timeout" in text


@pytest.mark.asyncio
async def test_timeout_leaves_other_flows_alone(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.SEND, ConversationState.AWAITING_AMOUNT)

    await login_timeout(make_message_update(CHAT_ID, "x"), context)

    assert conversation_store.get(CHAT_ID).kind == FlowKind.SEND
    context.bot.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_cancel(context, conversation_store):
    conversation_store.begin(CHAT_ID, FlowKind.LOGIN, ConversationState.AWAITING_EMAIL)
    update = make_message_update(CHAT_ID, "/cancel")

    assert await cancel_command(update, context) == ConversationHandler.END
    assert conversation_store.get(CHAT_ID) is None
    assert replies(update) == ["❌ Cancelled."]


def test_conversation_configuration(conversation_store):
    conversation = create_login_conversation(conversation_store, timeout=120)

    assert conversation.conversation_timeout == 120
    assert conversation.allow_reentry
    assert set(conversation.states) == {
        ConversationState.AWAITING_EMAIL,
        ConversationState.AWAITING_OTP,
        ConversationHandler.TIMEOUT,
    }
