"""
Payments API gateway.

One coroutine per remote operation. Every call returns an ``ApiResult``;
HTTP and transport failures never escape as exceptions. Callers look up
the session themselves and pass the bearer token in.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from payout_bot.core.errors import ApiError, ApiResult, ErrorKind
from payout_bot.core.error_normalizer import normalize_error
from payout_bot.core.otp_store import OtpCorrelationStore
from payout_bot.core.validators import normalize_otp
from payout_bot.models.auth import AuthToken
from payout_bot.models.profile import KycRecord, UserProfile
from payout_bot.models.transfer import TransferPage, TransferRecord
from payout_bot.models.wallet import Wallet, WalletBalance

logger = logging.getLogger(__name__)


class Endpoints:
    """Paths relative to the API base URL."""

    OTP_REQUEST = "/auth/email-otp/request"
    OTP_AUTHENTICATE = "/auth/email-otp/authenticate"
    ME = "/auth/me"
    REFRESH = "/auth/refresh"
    KYCS = "/kycs"
    WALLETS = "/wallets"
    BALANCES = "/wallets/balances"
    DEFAULT_WALLET = "/wallets/default"
    TRANSFERS = "/transfers"
    SEND = "/transfers/send"
    WALLET_WITHDRAW = "/transfers/wallet-withdraw"
    BANK_WITHDRAW = "/transfers/offramp"
    NOTIFICATIONS_AUTH = "/notifications/auth"


DEFAULT_DESCRIPTION = "Sent via Telegram"


class PaymentsGateway:
    """
    Typed wrapper around the payments REST API.

    Responsibilities:
    1. Attach the bearer token to authenticated calls
    2. Normalize every failure into an ``ApiError``
    3. Map payloads onto models (``AuthToken``, ``Wallet``, ...)
    4. Remember OTP correlation ids between request and authenticate
    """

    def __init__(self, http_client: httpx.AsyncClient, otp_store: OtpCorrelationStore):
        """
        Initialize the gateway.

        Args:
            http_client: AsyncClient whose ``base_url`` is the API root
            otp_store: Store for OTP correlation ids
        """
        self.http = http_client
        self.otp_store = otp_store

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> ApiResult:
        headers = {"Authorization": f"Bearer {token}"} if token else None

        try:
            response = await self.http.request(method, path, headers=headers, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}: {e}")
            return ApiResult.fail(ApiError.transport())

        body = _decode_body(response)

        if response.is_error:
            error = normalize_error(response.status_code, body)
            logger.warning(f"{method} {path} returned {response.status_code}: {error.message}")
            return ApiResult.fail(error)

        return ApiResult.ok(body)

    @staticmethod
    def _parse(result: ApiResult, parser) -> ApiResult:
        """Apply ``parser`` to a successful result's payload."""
        if not result.success:
            return result
        try:
            return ApiResult.ok(parser(result.data))
        except (ValidationError, ValueError, TypeError, KeyError) as e:
            logger.error(f"Unexpected response payload: {e}")
            return ApiResult.fail(ApiError(ErrorKind.REMOTE, "Invalid response from server"))

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    async def request_otp(self, email: str) -> ApiResult:
        """
        Ask the API to email an OTP.

        The ``sid`` of the answer, when present, is cached for ``email``.
        """
        result = await self._request("POST", Endpoints.OTP_REQUEST, json={"email": email})
        if not result.success:
            return result

        sid = result.data.get("sid") if isinstance(result.data, dict) else None
        if sid:
            self.otp_store.put(email, sid)
        else:
            logger.warning(f"No correlation id in OTP request response for {email}")
        return ApiResult.ok({"sid": sid})

    async def authenticate_with_otp(self, email: str, otp: str, sid: Optional[str] = None) -> ApiResult:
        """
        Exchange email + OTP for credentials.

        Args:
            email: Account email
            otp: Code as typed by the user; whitespace is removed
            sid: Correlation id; looked up in the OTP store when omitted

        Returns:
            ApiResult with an ``AuthToken``
        """
        code = normalize_otp(otp) or "".join(otp.split())
        if sid is None:
            sid = self.otp_store.peek(email)
        if sid is None:
            logger.warning(f"No correlation id for {email}; the OTP request may have expired")

        payload = {"email": email, "otp": code}
        if sid:
            payload["sid"] = sid

        result = await self._request("POST", Endpoints.OTP_AUTHENTICATE, json=payload)
        return self._parse(result, AuthToken.from_response)

    async def refresh_token(self, refresh_token: str) -> ApiResult:
        result = await self._request("POST", Endpoints.REFRESH, json={"refreshToken": refresh_token})
        return self._parse(result, AuthToken.from_response)

    async def get_profile(self, token: str) -> ApiResult:
        result = await self._request("GET", Endpoints.ME, token=token)
        return self._parse(result, UserProfile.model_validate)

    async def get_kyc_status(self, token: str) -> ApiResult:
        """
        Fetch KYC records.

        Returns:
            ApiResult with a list of ``KycRecord`` (newest first as sent by the API)
        """
        result = await self._request("GET", Endpoints.KYCS, token=token)
        return self._parse(result, lambda data: [KycRecord.model_validate(row) for row in _rows(data)])

    # ------------------------------------------------------------------ #
    # Wallets
    # ------------------------------------------------------------------ #

    async def list_wallets(self, token: str) -> ApiResult:
        result = await self._request("GET", Endpoints.WALLETS, token=token)
        return self._parse(result, lambda data: [Wallet.model_validate(row) for row in _rows(data)])

    async def get_balances(self, token: str) -> ApiResult:
        result = await self._request("GET", Endpoints.BALANCES, token=token)
        return self._parse(result, lambda data: [WalletBalance.model_validate(row) for row in _rows(data)])

    async def get_default_wallet(self, token: str) -> ApiResult:
        result = await self._request("GET", Endpoints.DEFAULT_WALLET, token=token)
        return self._parse(result, Wallet.model_validate)

    async def set_default_wallet(self, token: str, wallet_id: str) -> ApiResult:
        """Returns the updated ``Wallet``, or None when the API answers with an empty body."""
        result = await self._request("PUT", Endpoints.DEFAULT_WALLET, token=token, json={"walletId": wallet_id})
        return self._parse(result, lambda data: Wallet.model_validate(data) if data else None)

    # ------------------------------------------------------------------ #
    # Transfers
    # ------------------------------------------------------------------ #

    async def send_funds(
        self,
        token: str,
        recipient: str,
        amount: str,
        description: Optional[str] = None,
        wallet_id: Optional[str] = None
    ) -> ApiResult:
        """
        Send funds to an email address.

        Args:
            token: Bearer token
            recipient: Recipient email
            amount: Amount exactly as validated, e.g. ``"10.5"``
            description: Free text; a default is sent when empty
            wallet_id: Funding wallet (the default wallet when omitted)
        """
        payload = {
            "recipient": recipient,
            "amount": amount,
            "description": description or DEFAULT_DESCRIPTION,
        }
        if wallet_id:
            payload["walletId"] = wallet_id

        result = await self._request("POST", Endpoints.SEND, token=token, json=payload)
        if result.success:
            logger.info(f"Funds sent: amount={amount}")
        return self._parse(result, TransferRecord.model_validate)

    async def withdraw_to_wallet(self, token: str, address: str, amount: str, network: str) -> ApiResult:
        payload = {"address": address, "amount": amount, "network": network}
        result = await self._request("POST", Endpoints.WALLET_WITHDRAW, token=token, json=payload)
        if result.success:
            logger.info(f"Wallet withdrawal submitted: amount={amount} network={network}")
        return self._parse(result, TransferRecord.model_validate)

    async def withdraw_to_bank(self, token: str, amount: str, bank_id: str = "") -> ApiResult:
        payload = {"amount": amount, "bankId": bank_id}
        result = await self._request("POST", Endpoints.BANK_WITHDRAW, token=token, json=payload)
        if result.success:
            logger.info(f"Bank withdrawal submitted: amount={amount}")
        return self._parse(result, TransferRecord.model_validate)

    async def get_history(self, token: str, page: int = 1, limit: int = 10) -> ApiResult:
        result = await self._request(
            "GET", Endpoints.TRANSFERS, token=token, params={"page": page, "limit": limit}
        )
        return self._parse(result, lambda data: TransferPage.from_payload(data, page=page, limit=limit))

    # ------------------------------------------------------------------ #
    # Notifications
    # ------------------------------------------------------------------ #

    async def authorize_channel(self, token: str, socket_id: str, channel_name: str) -> ApiResult:
        """
        Get a Pusher private-channel signature.

        Returns:
            ApiResult with the raw auth body (``{"auth": ..., ...}``)
        """
        result = await self._request(
            "POST",
            Endpoints.NOTIFICATIONS_AUTH,
            token=token,
            json={"socket_id": socket_id, "channel_name": channel_name},
        )
        if result.success and not (isinstance(result.data, dict) and result.data.get("auth")):
            return ApiResult.fail(ApiError(ErrorKind.REMOTE, "Notification channel authorization failed"))
        return result


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _rows(data: Any) -> List[Dict[str, Any]]:
    """List payloads come either bare or wrapped in ``{"data": [...]}``."""
    if isinstance(data, dict):
        data = data.get("data", data.get("items", []))
    if not isinstance(data, list):
        raise ValueError("Expected a list payload")
    return [row for row in data if isinstance(row, dict)]
