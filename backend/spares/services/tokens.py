"""Signed member tokens for accept/decline links in spare-request emails (HS256 JWT)."""
from datetime import datetime, timedelta, timezone

import jwt

from spares.core.constants import ACCEPT_TOKEN_TTL_HOURS

ALGORITHM = "HS256"


def issue_accept_token(member, secret: str, ttl_hours: int = ACCEPT_TOKEN_TTL_HOURS) -> str:
    """Token identifying the member for one-click links. member needs id, email, phone, is_admin."""
    now = datetime.now(timezone.utc)
    payload = {
        "memberId": member.id,
        "email": member.email,
        "phone": member.phone,
        "isAdmin": bool(getattr(member, "is_admin", False)),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=ttl_hours)).timestamp()),
    }
    token = jwt.encode(payload, secret, algorithm=ALGORITHM)
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token
