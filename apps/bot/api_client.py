"""API client for bot to communicate with the API service."""

import json
import logging
from typing import Any

import httpx

from core.auth import sign_bot_request
from core.config import settings

logger = logging.getLogger(__name__)


def bot_auth_headers(body: bytes, caller_tg_id: int) -> dict[str, str]:
    """Build HMAC auth headers for a request body on behalf of a Telegram user."""
    return {
        "X-Tg-User-Id": str(caller_tg_id),
        "X-Bot-Signature": sign_bot_request(body),
        "Content-Type": "application/json",
    }


class ApiClient:
    """HTTP client for API service."""

    def __init__(self, base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url or settings.api_base_url
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=30.0, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def post(
        self,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        auth_bot: bool = False,
        caller_tg_id: int | None = None,
    ) -> dict[str, Any]:
        """
        Make POST request to API.

        Args:
            endpoint: API endpoint path
            json_data: JSON body to send
            auth_bot: If True, sign request with HMAC and add auth headers
            caller_tg_id: Telegram user ID of caller (required if auth_bot=True)

        Returns:
            JSON response from API
        """
        try:
            if auth_bot:
                if caller_tg_id is None:
                    raise ValueError("caller_tg_id required when auth_bot=True")

                # Signature covers the exact bytes sent
                body_bytes = json.dumps(json_data or {}).encode("utf-8")
                response = await self.client.post(
                    endpoint, content=body_bytes, headers=bot_auth_headers(body_bytes, caller_tg_id)
                )
            else:
                response = await self.client.post(endpoint, json=json_data)

            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"API request failed: {endpoint} - {e}")
            raise

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        auth_bot: bool = False,
        caller_tg_id: int | None = None,
    ) -> Any:
        """Make GET request to API. Signed GETs sign an empty body."""
        try:
            headers = None
            if auth_bot:
                if caller_tg_id is None:
                    raise ValueError("caller_tg_id required when auth_bot=True")
                headers = bot_auth_headers(b"", caller_tg_id)

            response = await self.client.get(endpoint, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"API request failed: {endpoint} - {e}")
            raise


# Global API client instance
api_client = ApiClient()
