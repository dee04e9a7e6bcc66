"""
Webhook signature verification (Standard Webhooks, as sent by Dodo Payments).

The signed message is "webhook-id.webhook-timestamp.body" and the
webhook-signature header carries one or more space separated "v1,<base64>"
entries. The HMAC key is the base64-decoded part of the "whsec_" secret.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def extract_signing_key(secret: str) -> bytes:
    """
    "whsec_BASE64KEY" -> decoded key bytes.
    Secrets that are not valid base64 are used as raw UTF-8 bytes.
    """
    encoded = secret[6:] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return secret.encode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """Reject webhooks older (or further in the future) than max_age seconds"""
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def create_webhook_signature(secret: str, webhook_id: str, timestamp: str, payload: bytes) -> str:
    """Signature header value for a payload, used for outgoing test events"""
    signed_message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), payload])
    digest = hmac.new(extract_signing_key(secret), signed_message, hashlib.sha256).digest()
    return f"v1,{base64.b64encode(digest).decode('utf-8')}"


async def verify_dodo_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Dodo Payments webhook and return the raw body.

    Raises:
        HTTPException(401) when headers are missing, stale or the signature does not match
    """
    # Signature covers the exact bytes received, so read before any parsing
    raw_body = await request.body()

    signature_header = request.headers.get("webhook-signature", "")
    timestamp = request.headers.get("webhook-timestamp", "")
    webhook_id = request.headers.get("webhook-id", "")

    if not signature_header or not timestamp or not webhook_id:
        logger.error("❌ Webhook missing signature headers")
        raise HTTPException(status_code=401, detail="Missing webhook signature headers")

    if not verify_timestamp(timestamp):
        raise HTTPException(status_code=401, detail="Webhook timestamp expired")

    expected = create_webhook_signature(secret, webhook_id, timestamp, raw_body)[3:]

    for candidate in signature_header.split():
        version, _, received = candidate.partition(",")
        if version == "v1" and constant_time_compare(expected, received):
            logger.info(f"✅ Dodo webhook signature verified: {webhook_id}")
            return raw_body

    logger.error(f"❌ Dodo webhook signature mismatch for {webhook_id}")
    raise HTTPException(status_code=401, detail="Invalid webhook signature")
