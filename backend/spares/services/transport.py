"""
Delivery transport: the email/SMS/token collaborators used by the notification processor.

Constructed once per process (see main.lifespan) and injected, so tests can pass a fake.
"""
import logging

import httpx

from spares.config import Settings
from spares.services.email_notify import SpareRequestDetails, send_spare_request_email
from spares.services.sms import SMS_TIMEOUT_SECONDS, send_spare_request_sms
from spares.services.tokens import issue_accept_token

logger = logging.getLogger(__name__)


class DeliveryTransport:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._http: httpx.Client | None = None

    def _http_client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=SMS_TIMEOUT_SECONDS)
        return self._http

    def issue_accept_token(self, member) -> str:
        return issue_accept_token(member, self.settings.jwt_secret)

    def send_request_email(
        self,
        to_email: str,
        to_name: str,
        requester_name: str,
        details: SpareRequestDetails,
        accept_token: str,
        request_id: int,
    ) -> None:
        send_spare_request_email(self.settings, to_email, to_name, requester_name, details, accept_token, request_id)

    def send_request_sms(self, to_phone: str, requester_name: str, game_date: str, game_time: str) -> None:
        send_spare_request_sms(
            self.settings, to_phone, requester_name, game_date, game_time, client=self._http_client()
        )

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None
