"""Signed session tokens."""

from datetime import UTC, datetime, timedelta

from itsdangerous import BadSignature, URLSafeTimedSerializer

from wynngrid_accounts.config import settings

serializer = URLSafeTimedSerializer(settings.secret_key, salt="wynngrid-session")


def create_session_token(account_id: int, lifetime: timedelta) -> str:
    """Create a signed token bound to an account, valid for ``lifetime``."""
    return serializer.dumps(
        {"account_id": account_id, "ttl": int(lifetime.total_seconds())}
    )


def decode_session_token(token: str, now: datetime | None = None) -> int | None:
    """Decode a session token and return the account ID, or None if invalid or expired."""
    try:
        data, signed_at = serializer.loads(token, return_timestamp=True)
    except BadSignature:
        return None

    if not isinstance(data, dict) or "account_id" not in data:
        return None

    expires_at = signed_at + timedelta(seconds=int(data.get("ttl", 0)))
    if (now or datetime.now(UTC)) > expires_at:
        return None
    return data["account_id"]
