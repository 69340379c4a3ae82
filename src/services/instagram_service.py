"""Authenticated calls to the Instagram Graph API."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import httpx
import logfire

from src.constants import (
    INSTAGRAM_ACCOUNT_FIELDS,
    INSTAGRAM_API_TIMEOUT_SECONDS,
    INSTAGRAM_GRAPH_API_BASE_URL,
    STORY_POLL_INTERVAL_SECONDS,
    STORY_POLL_MAX_ATTEMPTS,
)
from src.models.credential_models import InstagramCredential
from src.services.token_manager import TokenManager

T = TypeVar("T")


class InstagramAPIError(Exception):
    """Exception raised when an Instagram API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(self.message)


class StoryPublishError(Exception):
    """Raised when a story container ends in ERROR/EXPIRED or never finishes."""

    def __init__(self, message: str, status: str, container_id: str):
        self.status = status
        self.container_id = container_id
        super().__init__(message)


def _error_message(response: httpx.Response) -> tuple[str, dict[str, Any] | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase, None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message", response.reason_phrase), body
    return response.reason_phrase, body if isinstance(body, dict) else None


class InstagramGraphClient:
    """Client for the Instagram Graph API.

    Every call asks the TokenManager for a usable token first, so expiring
    tokens are refreshed transparently.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        credential: InstagramCredential,
        timeout_seconds: float = INSTAGRAM_API_TIMEOUT_SECONDS,
        poll_interval_seconds: float = STORY_POLL_INTERVAL_SECONDS,
        poll_max_attempts: int = STORY_POLL_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._token_manager = token_manager
        self._credential = credential
        self._timeout = timeout_seconds
        self._poll_interval = poll_interval_seconds
        self._poll_max_attempts = poll_max_attempts
        self._sleep = sleep

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and return the decoded JSON body.

        Raises:
            InstagramAPIError: On a non-2xx response or transport failure.
        """
        access_token = await self._token_manager.get_usable_token(self._credential)
        url = f"{INSTAGRAM_GRAPH_API_BASE_URL}{endpoint}"
        query = {**(params or {}), "access_token": access_token}

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, params=query, json=json)
        except httpx.RequestError as e:
            logfire.error(
                "Instagram API request error",
                method=method,
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InstagramAPIError(f"Instagram API request failed: {e}") from e

        elapsed = time.time() - start_time
        if not response.is_success:
            message, body = _error_message(response)
            logfire.error(
                "Instagram API request failed",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                response_body=response.text[:500],
                response_time_ms=elapsed * 1000,
            )
            raise InstagramAPIError(
                f"Instagram API error ({response.status_code}): {message}",
                status_code=response.status_code,
                response_body=body,
            )

        logfire.info(
            "Instagram API request successful",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            response_time_ms=elapsed * 1000,
        )
        return response.json()

    async def get_business_account_id(self) -> str:
        """Return the configured business account id, discovering it if unset."""
        if self._credential.business_account_id:
            return self._credential.business_account_id

        profile = await self.request(
            "GET", "/me", params={"fields": INSTAGRAM_ACCOUNT_FIELDS}
        )
        account_id = profile.get("id")
        if not account_id:
            raise InstagramAPIError("Could not discover Instagram business account id")
        logfire.info("Discovered Instagram business account", account_id=account_id)
        return account_id

    async def publish_story(
        self,
        media_type: str,
        media_url: str,
        *,
        location_id: str | None = None,
        collaborators: str | None = None,
    ) -> dict[str, Any]:
        """Create a story container, wait until it is processed, then publish it.

        Args:
            media_type: "IMAGE" or "VIDEO"
            media_url: Publicly reachable URL of the media
            location_id: Optional location page id
            collaborators: Optional comma-separated usernames

        Raises:
            StoryPublishError: If processing ends in ERROR/EXPIRED or times out.
        """
        ig_user_id = await self.get_business_account_id()

        body: dict[str, Any] = {"media_type": "STORIES"}
        if media_type.upper() == "IMAGE":
            body["image_url"] = media_url
        else:
            body["video_url"] = media_url
        if location_id:
            body["location_id"] = location_id
        if collaborators:
            body["collaborators"] = collaborators

        created = await self.request("POST", f"/{ig_user_id}/media", json=body)
        container_id = created.get("id")
        if not container_id:
            return created

        attempts = await self._wait_for_container(container_id)

        published = await self.request(
            "POST",
            f"/{ig_user_id}/media_publish",
            json={"creation_id": container_id},
        )
        logfire.info(
            "Story published",
            container_id=container_id,
            attempts_taken=attempts,
        )
        return {
            **published,
            "status": "published",
            "container_id": container_id,
            "attempts_taken": attempts,
        }

    async def _wait_for_container(self, container_id: str) -> int:
        status = "IN_PROGRESS"
        attempts = 0
        while status == "IN_PROGRESS" and attempts < self._poll_max_attempts:
            await self._sleep(self._poll_interval)
            response = await self.request(
                "GET", f"/{container_id}", params={"fields": "status_code"}
            )
            status = response.get("status_code") or "IN_PROGRESS"
            attempts += 1

            if status in ("ERROR", "EXPIRED"):
                logfire.error(
                    "Story container processing failed",
                    container_id=container_id,
                    status=status,
                    attempts=attempts,
                )
                raise StoryPublishError(
                    f"Story creation failed with status: {status}. "
                    "Please check your media file and try again.",
                    status=status,
                    container_id=container_id,
                )

        if status == "IN_PROGRESS":
            raise StoryPublishError(
                "Story creation timed out. The media is taking too long to process. "
                "Please try with a smaller file or try again later.",
                status=status,
                container_id=container_id,
            )
        return attempts


async def run_items(
    items: Iterable[T],
    operation: Callable[[T], Awaitable[dict[str, Any]]],
    *,
    continue_on_fail: bool = False,
) -> list[dict[str, Any]]:
    """Apply an operation to each item in order.

    With ``continue_on_fail`` a failing item records ``{"error": message}``
    in its slot and the batch carries on; otherwise the first error is raised.
    """
    results: list[dict[str, Any]] = []
    for index, item in enumerate(items):
        try:
            results.append(await operation(item))
        except Exception as e:
            if not continue_on_fail:
                raise
            logfire.warn(
                "Item failed, continuing batch",
                item_index=index,
                error=str(e),
                error_type=type(e).__name__,
            )
            results.append({"error": str(e)})
    return results
