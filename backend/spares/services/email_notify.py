"""
Send spare-request emails via SMTP (Google Gmail or other).
Set SMTP_USER, SMTP_PASSWORD (and optionally NOTIFY_FROM) in .env. Use a Gmail App Password (not your normal password).
"""
import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from spares.config import Settings
from spares.core.constants import CHANNEL_EMAIL
from spares.core.errors import DeliveryError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class SpareRequestDetails:
    requested_for_name: str
    game_date: str
    game_time: str
    league_name: str | None = None
    position: str | None = None
    message: str | None = None


def _from_address(settings: Settings) -> str:
    if (settings.notify_from or "").strip():
        return settings.notify_from.strip()
    user = (settings.smtp_user or "").strip()
    if user:
        return f"Triangle Curling <{user}>"
    return "Triangle Curling <noreply@localhost>"


def respond_url(settings: Settings, accept_token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/spare-request/respond?token={accept_token}"


def build_spare_request_email(
    to_name: str,
    requester_name: str,
    details: SpareRequestDetails,
    accept_token: str,
    settings: Settings,
) -> tuple[str, str, str]:
    """Return (subject, plain-text body, html body)."""
    link = respond_url(settings, accept_token)
    position = f" as {details.position}" if details.position else ""
    league = f" ({details.league_name})" if details.league_name else ""
    lines = [
        f"Hi {to_name},",
        "",
        f"{requester_name} has requested a spare for {details.requested_for_name}{position}{league}.",
        "",
        f"Date: {details.game_date}",
        f"Time: {details.game_time}",
    ]
    if details.message:
        lines += ["", f'Message: "{details.message}"']
    lines += ["", f"Accept this spare: {link}", "", "Do not forward this email: the link is tied to your account."]
    text = "\n".join(lines)

    e = html.escape
    message_html = f"<p><em>Message: &quot;{e(details.message)}&quot;</em></p>" if details.message else ""
    position_html = f" as <strong>{e(details.position)}</strong>" if details.position else ""
    body = (
        "<h2>New Spare Request</h2>"
        f"<p>Hi {e(to_name)},</p>"
        f"<p>{e(requester_name)} has requested a spare for <strong>{e(details.requested_for_name)}</strong>"
        f"{position_html}{e(league)}.</p>"
        f"<p><strong>Date:</strong> {e(details.game_date)}<br><strong>Time:</strong> {e(details.game_time)}</p>"
        f"{message_html}"
        f'<p><a href="{e(link)}">Accept This Spare</a></p>'
        f"<p style='color:#666;font-size:14px'>Or copy this link: {e(link)}</p>"
    )
    subject = f"Spare needed: {details.game_date} at {details.game_time}"
    return subject, text, body


def send_spare_request_email(
    settings: Settings,
    to_email: str,
    to_name: str,
    requester_name: str,
    details: SpareRequestDetails,
    accept_token: str,
    request_id: int,
) -> None:
    """
    Send one spare-request email. Raises DeliveryError when SMTP fails so the caller can
    release its claim and retry later. Unconfigured SMTP or test mode logs instead of sending.
    """
    to_email = (to_email or "").strip()
    if not to_email:
        raise DeliveryError(CHANNEL_EMAIL, "empty recipient address")
    subject, text, body = build_spare_request_email(to_name, requester_name, details, accept_token, settings)

    if settings.notify_test_mode:
        logger.info("[TEST MODE] Email for request %s to %s: %s\n%s", request_id, to_email, subject, text)
        return
    user = (settings.smtp_user or "").strip()
    password = (settings.smtp_password or "").strip()
    if not user or not password:
        logger.info("SMTP_USER or SMTP_PASSWORD not set; would email %s for request %s", to_email, request_id)
        return

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = _from_address(settings)
    msg["To"] = to_email
    msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(body, "html"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(user, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Failed to send spare request email to %s (request %s): %s", to_email, request_id, e)
        raise DeliveryError(CHANNEL_EMAIL, str(e)) from e
    logger.info("Spare request email sent to %s for request %s", to_email, request_id)
