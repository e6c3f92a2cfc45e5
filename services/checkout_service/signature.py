"""Mercado Pago webhook signature verification.

Notifications carry ``x-signature: ts=<unix seconds>,v1=<hex digest>`` and
``x-request-id``. The digest is HMAC-SHA256, keyed with the webhook secret,
over the manifest ``id:<data.id>;request-id:<x-request-id>;ts:<ts>;``
(parts whose value is absent are left out).
"""

import hashlib
import hmac
import time
from typing import Optional

from services.checkout_service.errors import AuthenticityError


def parse_signature_header(header: str) -> tuple[Optional[str], Optional[str]]:
    ts = v1 = None
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        key = key.strip().lower()
        if key == "ts":
            ts = value.strip()
        elif key == "v1":
            v1 = value.strip().lower()
    return ts, v1


def build_manifest(data_id: Optional[str], request_id: Optional[str], ts: str) -> str:
    manifest = ""
    if data_id:
        # Alphanumeric ids are signed lowercased
        manifest += f"id:{data_id.lower() if data_id.isalnum() else data_id};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{ts};"
    return manifest


def compute_signature(
    secret: str, data_id: Optional[str], request_id: Optional[str], ts: str
) -> str:
    manifest = build_manifest(data_id, request_id, ts)
    return hmac.new(
        secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify_webhook_signature(
    *,
    secret: str,
    signature_header: Optional[str],
    request_id: Optional[str],
    data_id: Optional[str],
    tolerance_seconds: int = 0,
    now: Optional[float] = None,
) -> None:
    """Raise AuthenticityError unless the notification is signed with ``secret``."""
    if not secret:
        raise AuthenticityError("Webhook secret is not configured")
    if not signature_header:
        raise AuthenticityError("Missing x-signature header")

    ts, received = parse_signature_header(signature_header)
    if not ts or not received:
        raise AuthenticityError("Malformed x-signature header")

    if tolerance_seconds > 0:
        try:
            ts_seconds = int(ts)
        except ValueError:
            raise AuthenticityError("Malformed signature timestamp")
        # Mercado Pago has sent both seconds and milliseconds
        if ts_seconds > 10**11:
            ts_seconds //= 1000
        current = time.time() if now is None else now
        if abs(current - ts_seconds) > tolerance_seconds:
            raise AuthenticityError("Signature timestamp outside tolerance")

    expected = compute_signature(secret, data_id, request_id, ts)
    if not hmac.compare_digest(expected, received):
        raise AuthenticityError("Invalid signature")
