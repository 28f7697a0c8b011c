"""Outbound calls through the Twilio REST API."""
import logging
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client

from app.core.errors import TelephonyError

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = ["initiated", "ringing", "answered", "completed"]


class CallDialer:
    """Places and hangs up Twilio calls."""

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        client: Optional[Client] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self._client = client

    def is_configured(self) -> bool:
        return bool(self._client or (self.account_sid and self.auth_token)) and bool(self.from_number)

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.is_configured():
                raise TelephonyError("Twilio credentials or caller number not configured")
            self._client = Client(
                self.account_sid, self.auth_token, http_client=AsyncTwilioHttpClient()
            )
        return self._client

    async def dial(self, to: str, voice_url: str, status_callback: str) -> str:
        """
        Start an outbound call.

        Twilio fetches ``voice_url`` when the callee answers and posts status
        changes to ``status_callback``. Returns the call SID.
        """
        try:
            call = await self.client.calls.create_async(
                to=to,
                from_=self.from_number,
                url=voice_url,
                method="POST",
                status_callback=status_callback,
                status_callback_event=STATUS_CALLBACK_EVENTS,
                status_callback_method="POST",
            )
        except TwilioRestException as e:
            raise TelephonyError(f"Twilio rejected call to {to}: {e.msg}") from e

        logger.info(f"[DIALER] Call initiated: {call.sid} to {to}")
        return call.sid

    async def hang_up(self, call_sid: str) -> None:
        """Complete an in-progress call."""
        try:
            await self.client.calls(call_sid).update_async(status="completed")
        except TwilioRestException as e:
            raise TelephonyError(f"Twilio could not end call {call_sid}: {e.msg}") from e

        logger.info(f"[DIALER] Call ended: {call_sid}")
