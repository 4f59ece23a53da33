"""Outbound Daraja STK push client with bounded retry."""

import asyncio
import base64
import logging
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, Optional

import httpx

from app.core.config import Settings
from app.core.exceptions import GatewayError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"


class _Retryable(Exception):
    pass


def stk_password(short_code: str, passkey: str, timestamp: str) -> str:
    return base64.b64encode(f"{short_code}{passkey}{timestamp}".encode("utf-8")).decode("ascii")


class StkPushClient:
    """
    Initiates STK push requests. Transport errors and 5xx responses are retried
    up to `max_attempts` times with exponential backoff; 4xx responses are not.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.http = http
        self.settings = settings
        self.max_attempts = settings.mpesa_max_attempts
        self.backoff_seconds = settings.mpesa_backoff_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "StkPushClient":
        http = httpx.AsyncClient(base_url=settings.mpesa_base_url, timeout=settings.mpesa_timeout_seconds)
        return cls(http, settings)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _send(self, request: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        last_error: Optional[str] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await request()
                if response.status_code >= 500:
                    raise _Retryable(f"gateway returned {response.status_code}")
                if response.status_code >= 400:
                    raise GatewayError(f"Gateway rejected request ({response.status_code})")
                return response
            except (httpx.TransportError, _Retryable) as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning("Gateway call failed", extra={"attempt": attempt, "error": last_error})
                if attempt < self.max_attempts:
                    await self._sleep(self.backoff_seconds * (2 ** (attempt - 1)))
        raise GatewayError(f"Gateway unavailable after {self.max_attempts} attempts: {last_error}")

    async def get_access_token(self) -> str:
        key = self.settings.mpesa_consumer_key or ""
        secret = self.settings.mpesa_consumer_secret or ""
        response = await self._send(
            lambda: self.http.get(
                TOKEN_PATH,
                params={"grant_type": "client_credentials"},
                auth=(key, secret),
            )
        )
        token = response.json().get("access_token")
        if not token:
            raise GatewayError("Gateway did not return an access token")
        return token

    async def initiate(
        self,
        *,
        short_code: str,
        phone: str,
        amount: Decimal,
        account_reference: str,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Send an STK push and return the CheckoutRequestID."""
        token = await self.get_access_token()
        timestamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
        body = {
            "BusinessShortCode": short_code,
            "Password": stk_password(short_code, self.settings.mpesa_passkey or "", timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            # Daraja takes whole shillings
            "Amount": int(amount.to_integral_value()),
            "PartyA": phone,
            "PartyB": short_code,
            "PhoneNumber": phone,
            "CallBackURL": self.settings.mpesa_callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": f"School Fees - {account_reference}",
        }
        response = await self._send(
            lambda: self.http.post(
                STK_PUSH_PATH,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        )
        return response.json().get("CheckoutRequestID")
