"""Media actions: publish stories through the Graph API."""

import logging

from fastapi import APIRouter, Depends

from src.api.dependencies import get_graph_client
from src.models.media_models import StoryBatchRequest, StoryPublishRequest
from src.services.instagram_service import InstagramGraphClient, run_items

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/story")
async def publish_story(
    story: StoryPublishRequest,
    client: InstagramGraphClient = Depends(get_graph_client),
):
    """Create a story container, wait for processing and publish it."""
    return await client.publish_story(
        story.media_type,
        story.media_url,
        location_id=story.location_id,
        collaborators=story.collaborators,
    )


@router.post("/stories")
async def publish_stories(
    batch: StoryBatchRequest,
    client: InstagramGraphClient = Depends(get_graph_client),
):
    """Publish several stories in order.

    With ``continueOnFail`` a failed story is reported inline as
    ``{"error": ...}``; otherwise the first failure aborts the batch.
    """

    async def _publish(story: StoryPublishRequest):
        return await client.publish_story(
            story.media_type,
            story.media_url,
            location_id=story.location_id,
            collaborators=story.collaborators,
        )

    results = await run_items(
        batch.items, _publish, continue_on_fail=batch.continue_on_fail
    )
    logger.info(
        "Story batch finished - items: %d, failed: %d",
        len(results),
        sum(1 for result in results if "error" in result),
    )
    return {"results": results}
