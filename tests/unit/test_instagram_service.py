"""Tests for the Instagram Graph API client."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from src.services.instagram_service import (
    InstagramAPIError,
    InstagramGraphClient,
    StoryPublishError,
    run_items,
)

GRAPH = "https://graph.instagram.com/v23.0"
IG_USER = "17841400000000000"


@pytest.fixture
def token_manager():
    manager = AsyncMock()
    manager.get_usable_token = AsyncMock(return_value="usable-token")
    return manager


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def client(token_manager, credential, sleep):
    return InstagramGraphClient(
        token_manager,
        credential,
        poll_interval_seconds=2.0,
        poll_max_attempts=3,
        sleep=sleep,
    )


class TestRequest:
    """Test InstagramGraphClient.request()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_appends_usable_token(self, client, token_manager, credential, mock_logfire):
        respx.get(f"{GRAPH}/me").mock(
            return_value=httpx.Response(200, json={"id": IG_USER})
        )

        data = await client.request("GET", "/me", params={"fields": "id"})

        assert data == {"id": IG_USER}
        request = respx.calls.last.request
        assert request.url.params["access_token"] == "usable-token"
        assert request.url.params["fields"] == "id"
        token_manager.get_usable_token.assert_awaited_once_with(credential)

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_2xx_is_wrapped(self, client, mock_logfire):
        respx.post(f"{GRAPH}/c-1/replies").mock(
            return_value=httpx.Response(
                400,
                json={"error": {"message": "Invalid parameter", "code": 100}},
            )
        )

        with pytest.raises(InstagramAPIError) as exc_info:
            await client.request("POST", "/c-1/replies", json={"message": "hi"})

        error = exc_info.value
        assert error.status_code == 400
        assert "Invalid parameter" in error.message
        assert error.response_body["error"]["code"] == 100

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_wrapped(self, client, mock_logfire):
        respx.get(f"{GRAPH}/me").mock(side_effect=httpx.ConnectError("down"))

        with pytest.raises(InstagramAPIError, match="request failed"):
            await client.request("GET", "/me")


class TestBusinessAccount:
    @pytest.mark.asyncio
    async def test_configured_id_is_used(self, client):
        assert await client.get_business_account_id() == IG_USER

    @pytest.mark.asyncio
    @respx.mock
    async def test_id_is_discovered_when_missing(
        self, token_manager, credential, mock_logfire
    ):
        credential = credential.model_copy(update={"business_account_id": None})
        client = InstagramGraphClient(token_manager, credential)
        respx.get(f"{GRAPH}/me").mock(
            return_value=httpx.Response(200, json={"id": "discovered-1"})
        )

        assert await client.get_business_account_id() == "discovered-1"


class TestPublishStory:
    """Story container polling and publishing."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_publishes_when_finished(self, client, sleep, mock_logfire):
        create = respx.post(f"{GRAPH}/{IG_USER}/media").mock(
            return_value=httpx.Response(200, json={"id": "container-1"})
        )
        respx.get(f"{GRAPH}/container-1").mock(
            side_effect=[
                httpx.Response(200, json={"status_code": "IN_PROGRESS"}),
                httpx.Response(200, json={"status_code": "FINISHED"}),
            ]
        )
        publish = respx.post(f"{GRAPH}/{IG_USER}/media_publish").mock(
            return_value=httpx.Response(200, json={"id": "story-1"})
        )

        result = await client.publish_story("IMAGE", "https://cdn/story.jpg")

        assert result == {
            "id": "story-1",
            "status": "published",
            "container_id": "container-1",
            "attempts_taken": 2,
        }
        assert json.loads(create.calls.last.request.content) == {
            "media_type": "STORIES",
            "image_url": "https://cdn/story.jpg",
        }
        assert json.loads(publish.calls.last.request.content) == {
            "creation_id": "container-1"
        }
        assert sleep.await_count == 2
        sleep.assert_awaited_with(2.0)

    @pytest.mark.asyncio
    @respx.mock
    async def test_video_story_with_options(self, client, mock_logfire):
        create = respx.post(f"{GRAPH}/{IG_USER}/media").mock(
            return_value=httpx.Response(200, json={"id": "container-2"})
        )
        respx.get(f"{GRAPH}/container-2").mock(
            return_value=httpx.Response(200, json={"status_code": "FINISHED"})
        )
        respx.post(f"{GRAPH}/{IG_USER}/media_publish").mock(
            return_value=httpx.Response(200, json={"id": "story-2"})
        )

        await client.publish_story(
            "VIDEO", "https://cdn/story.mp4", location_id="loc-1", collaborators="a,b"
        )

        assert json.loads(create.calls.last.request.content) == {
            "media_type": "STORIES",
            "video_url": "https://cdn/story.mp4",
            "location_id": "loc-1",
            "collaborators": "a,b",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", ["ERROR", "EXPIRED"])
    @respx.mock
    async def test_terminal_status_raises(self, client, terminal, mock_logfire):
        respx.post(f"{GRAPH}/{IG_USER}/media").mock(
            return_value=httpx.Response(200, json={"id": "container-3"})
        )
        respx.get(f"{GRAPH}/container-3").mock(
            return_value=httpx.Response(200, json={"status_code": terminal})
        )
        publish = respx.post(f"{GRAPH}/{IG_USER}/media_publish")

        with pytest.raises(StoryPublishError, match=terminal) as exc_info:
            await client.publish_story("IMAGE", "https://cdn/story.jpg")

        assert exc_info.value.status == terminal
        assert not publish.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_times_out_after_max_attempts(self, client, sleep, mock_logfire):
        respx.post(f"{GRAPH}/{IG_USER}/media").mock(
            return_value=httpx.Response(200, json={"id": "container-4"})
        )
        status_route = respx.get(f"{GRAPH}/container-4").mock(
            return_value=httpx.Response(200, json={"status_code": "IN_PROGRESS"})
        )

        with pytest.raises(StoryPublishError, match="timed out"):
            await client.publish_story("IMAGE", "https://cdn/story.jpg")

        assert status_route.call_count == 3
        assert sleep.await_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_without_id_is_returned_as_is(self, client, mock_logfire):
        respx.post(f"{GRAPH}/{IG_USER}/media").mock(
            return_value=httpx.Response(200, json={"success": False})
        )

        assert await client.publish_story("IMAGE", "https://cdn/x.jpg") == {
            "success": False
        }


class TestRunItems:
    """Per-item execution with continue-on-failure."""

    @pytest.mark.asyncio
    async def test_error_recorded_inline_when_continuing(self, mock_logfire):
        async def operation(item):
            if item == 2:
                raise InstagramAPIError("Instagram API error (400): bad item")
            return {"item": item}

        results = await run_items([1, 2, 3], operation, continue_on_fail=True)

        assert results == [
            {"item": 1},
            {"error": "Instagram API error (400): bad item"},
            {"item": 3},
        ]

    @pytest.mark.asyncio
    async def test_error_aborts_batch_by_default(self):
        calls = []

        async def operation(item):
            calls.append(item)
            if item == 2:
                raise InstagramAPIError("bad item")
            return {"item": item}

        with pytest.raises(InstagramAPIError):
            await run_items([1, 2, 3], operation)

        assert calls == [1, 2]
