"""Request models for media publishing actions."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StoryPublishRequest(BaseModel):
    """One story to publish."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    media_type: Literal["IMAGE", "VIDEO"] = "IMAGE"
    media_url: str = Field(..., min_length=1, description="Publicly reachable media URL")
    location_id: str | None = None
    collaborators: str | None = Field(
        default=None, description="Comma-separated usernames"
    )


class StoryBatchRequest(BaseModel):
    """Several stories published in order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[StoryPublishRequest] = Field(..., min_length=1)
    continue_on_fail: bool = False
