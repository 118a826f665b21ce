"""
Send SMS via the Twilio REST API.
Requires TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER (or TWILIO_MESSAGING_SERVICE_SID) in env.
If not configured, send_spare_request_sms logs and returns.
"""
import logging

import httpx

from spares.config import Settings
from spares.core.constants import CHANNEL_SMS
from spares.core.errors import DeliveryError

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
SMS_TIMEOUT_SECONDS = 10.0


def spare_request_sms_text(requester_name: str, game_date: str, game_time: str) -> str:
    return (
        f"Triangle Curling: {requester_name} needs a spare for {game_date} at {game_time}. "
        "Check your email or log in to respond."
    )


def _configured(settings: Settings) -> bool:
    return bool(
        settings.twilio_account_sid
        and settings.twilio_auth_token
        and (settings.twilio_phone_number or settings.twilio_messaging_service_sid)
    )


def send_sms(settings: Settings, to_phone: str, body: str, client: httpx.Client | None = None) -> None:
    """Send one SMS. Raises DeliveryError on transport errors or a non-2xx Twilio response."""
    to_phone = (to_phone or "").strip()
    if not to_phone:
        raise DeliveryError(CHANNEL_SMS, "empty recipient number")
    if settings.notify_test_mode:
        logger.info("[TEST MODE] SMS to %s: %s", to_phone, body)
        return
    if not _configured(settings):
        logger.info("Twilio not configured; would SMS %s: %s", to_phone, body)
        return

    url = f"{TWILIO_API_BASE}/Accounts/{settings.twilio_account_sid}/Messages.json"
    data = {"To": to_phone, "Body": body}
    if settings.twilio_messaging_service_sid:
        data["MessagingServiceSid"] = settings.twilio_messaging_service_sid
    else:
        data["From"] = settings.twilio_phone_number
    auth = (settings.twilio_account_sid, settings.twilio_auth_token)
    try:
        if client is not None:
            resp = client.post(url, data=data, auth=auth)
        else:
            with httpx.Client(timeout=SMS_TIMEOUT_SECONDS) as c:
                resp = c.post(url, data=data, auth=auth)
    except httpx.HTTPError as e:
        logger.warning("Twilio request failed for %s: %s", to_phone, e)
        raise DeliveryError(CHANNEL_SMS, str(e)) from e
    if resp.status_code >= 300:
        logger.warning("Twilio returned %s for %s: %s", resp.status_code, to_phone, resp.text)
        raise DeliveryError(CHANNEL_SMS, f"Twilio returned {resp.status_code}")


def send_spare_request_sms(
    settings: Settings,
    to_phone: str,
    requester_name: str,
    game_date: str,
    game_time: str,
    client: httpx.Client | None = None,
) -> None:
    send_sms(settings, to_phone, spare_request_sms_text(requester_name, game_date, game_time), client=client)
    logger.info("Spare request SMS sent to %s", to_phone)
