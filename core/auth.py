"""Authentication utilities for bot->API requests."""

import base64
import hashlib
import hmac
import logging

from fastapi import HTTPException, Request, status

from core.config import settings

logger = logging.getLogger(__name__)


def _b64u_encode(data: bytes) -> str:
    """Base64-URL encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def sign_bot_request(body: bytes) -> str:
    """
    Sign a request body with the shared bot secret.

    Args:
        body: Raw request body bytes

    Returns:
        Base64-URL encoded HMAC-SHA256 signature
    """
    mac = hmac.new(settings.internal_bot_secret.encode(), body, hashlib.sha256).digest()
    return _b64u_encode(mac)


def verify_bot_signature(body: bytes, signature: str) -> bool:
    """
    Verify HMAC-SHA256 signature of request body.

    Args:
        body: Raw request body bytes
        signature: Base64-URL encoded HMAC signature

    Returns:
        True if signature is valid
    """
    return hmac.compare_digest(sign_bot_request(body), signature or "")


TG_USER_HEADER = "X-Tg-User-Id"
SIGNATURE_HEADER = "X-Bot-Signature"


async def bot_auth(request: Request) -> int:
    """
    Authenticate a bot->API call made on behalf of a Telegram user.

    The bot signs the exact body bytes it sends (an empty body for GETs), so
    the caller's Telegram ID cannot be forged by anyone without the shared secret.

    Returns:
        Telegram user ID of the caller

    Raises:
        HTTPException: 401 for missing or invalid auth, 400 for a malformed user ID
    """
    caller = request.headers.get(TG_USER_HEADER)
    signature = request.headers.get(SIGNATURE_HEADER)

    if not caller or not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing auth headers ({TG_USER_HEADER}, {SIGNATURE_HEADER})",
        )

    if not verify_bot_signature(await request.body(), signature):
        logger.warning(f"Rejected bot request with invalid signature for caller {caller}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    if not caller.isdigit():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {TG_USER_HEADER} format")

    return int(caller)
