"""Envelope serialization and HMAC-SHA256 signing.

The signature covers the exact bytes put on the wire. The envelope is
serialized once and that byte string is both signed and transmitted,
so a receiver verifies by hashing the raw request body it received.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Mapping
from typing import Any

from chargehook.exceptions import ValidationError

CONTENT_TYPE_HEADER = "Content-Type"
JSON_CONTENT_TYPE = "application/json"


def serialize_envelope(envelope: Mapping[str, Any]) -> bytes:
    """Serialize an envelope to the UTF-8 JSON body that gets transmitted.

    Keys keep their insertion order and non-ASCII text is emitted as-is.
    """
    return json.dumps(
        envelope,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


def compute_signature(body: bytes | str, secret: str) -> str:
    """Compute the hex HMAC-SHA256 of a body.

    Args:
        body: Transmitted body, as bytes or UTF-8 text.
        secret: Subscriber shared secret.

    Returns:
        Lowercase hex digest.

    Raises:
        ValidationError: If the secret is empty.
    """
    if not secret:
        raise ValidationError("secret", "signing secret must not be empty")
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_signature(body: bytes | str, secret: str, signature: str) -> bool:
    """Verify a hex HMAC-SHA256 signature in constant time."""
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected, signature)


def build_headers(
    signature: str,
    event_type: str,
    custom_headers: Mapping[str, str] | None = None,
    *,
    signature_header: str = "X-Webhook-Signature",
    event_header: str = "X-Webhook-Event",
) -> dict[str, str]:
    """Assemble delivery request headers.

    Reserved headers come first; custom headers are merged after them,
    so a custom header with a reserved name replaces the reserved value.
    Header names compare case-insensitively.
    """
    headers = {
        CONTENT_TYPE_HEADER: JSON_CONTENT_TYPE,
        signature_header: signature,
        event_header: event_type,
    }
    for name, value in (custom_headers or {}).items():
        for existing in [key for key in headers if key.lower() == name.lower()]:
            del headers[existing]
        headers[name] = value
    return headers
