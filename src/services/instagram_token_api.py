"""Transport for the Instagram token endpoints (debug_token, refresh_access_token).

Every response body is decoded exactly once here into a typed model, so
callers never inspect raw shapes.
"""

import json
import time
from typing import Any

import httpx
import logfire
from pydantic import BaseModel, ValidationError

from src.constants import (
    INSTAGRAM_API_TIMEOUT_SECONDS,
    INSTAGRAM_DEBUG_TOKEN_URL,
    INSTAGRAM_REFRESH_GRANT_TYPE,
    INSTAGRAM_REFRESH_TOKEN_URL,
)
from src.models.token_models import RefreshedToken, TokenIntrospection


class TokenAPIError(Exception):
    """Raised when a token endpoint call fails or returns an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def decode_json_body(text: str) -> dict[str, Any]:
    """Decode a response body into a JSON object.

    The refresh endpoint has been seen returning the object JSON-encoded a
    second time (a JSON string holding JSON), so one extra level is unwrapped.

    Raises:
        TokenAPIError: If the body is not a JSON object.
    """
    try:
        body = json.loads(text)
        if isinstance(body, str):
            body = json.loads(body)
    except ValueError as e:
        raise TokenAPIError(f"Response body is not valid JSON: {e}") from e

    if not isinstance(body, dict):
        raise TokenAPIError(
            f"Expected a JSON object, got {type(body).__name__}"
        )
    return body


class InstagramTokenClient:
    """Calls the token introspection and refresh endpoints."""

    def __init__(self, timeout_seconds: float = INSTAGRAM_API_TIMEOUT_SECONDS):
        self._timeout = timeout_seconds

    async def debug_token(self, token: str) -> TokenIntrospection:
        """Introspect a token, using it as both subject and authenticator."""
        body = await self._get(
            INSTAGRAM_DEBUG_TOKEN_URL,
            params={"input_token": token, "access_token": token},
            operation="debug_token",
        )
        return self._parse(TokenIntrospection, body, "debug_token")

    async def refresh_access_token(self, token: str) -> RefreshedToken:
        """Exchange a long-lived token for a renewed one."""
        body = await self._get(
            INSTAGRAM_REFRESH_TOKEN_URL,
            params={
                "grant_type": INSTAGRAM_REFRESH_GRANT_TYPE,
                "access_token": token,
            },
            operation="refresh_access_token",
        )
        if not body.get("access_token"):
            raise TokenAPIError(
                "No access_token received from refresh endpoint "
                f"(keys: {sorted(body)})"
            )
        return self._parse(RefreshedToken, body, "refresh_access_token")

    async def _get(
        self,
        url: str,
        params: dict[str, str],
        operation: str,
    ) -> dict[str, Any]:
        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params)
        except httpx.RequestError as e:
            logfire.error(
                "Instagram token endpoint request error",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=(time.time() - start_time) * 1000,
            )
            raise TokenAPIError(f"{operation} request failed: {e}") from e

        elapsed = time.time() - start_time
        if response.is_success:
            logfire.info(
                "Instagram token endpoint responded",
                operation=operation,
                status_code=response.status_code,
                response_time_ms=elapsed * 1000,
            )
            return decode_json_body(response.text)

        logfire.error(
            "Instagram token endpoint returned an error",
            operation=operation,
            status_code=response.status_code,
            response_body=response.text[:500],
            response_time_ms=elapsed * 1000,
        )
        raise TokenAPIError(
            f"{operation} failed with status {response.status_code}",
            status_code=response.status_code,
        )

    @staticmethod
    def _parse(model: type[BaseModel], body: dict[str, Any], operation: str):
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise TokenAPIError(
                f"Malformed {operation} response: {e.error_count()} validation error(s)"
            ) from e
