"""Incoming Instagram webhook envelope and the records routed from it."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WebhookEvent(str, Enum):
    """Subscription fields that can be routed to an output channel."""

    MESSAGES = "messages"
    POSTBACKS = "messaging_postbacks"
    OPTINS = "messaging_optins"
    COMMENTS = "comments"
    MENTIONS = "mentions"


# =============================================================================
# Inbound envelope
# =============================================================================


class _Inbound(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class Participant(_Inbound):
    id: str | None = None


class QuickReply(_Inbound):
    payload: str | None = None


class MessagePayload(_Inbound):
    mid: str | None = None
    text: str | None = None
    attachments: list[dict[str, Any]] | None = None
    quick_reply: QuickReply | None = None
    is_echo: bool = False


class PostbackPayload(_Inbound):
    title: str | None = None
    payload: str | None = None


class OptinPayload(_Inbound):
    ref: str | None = None


class MessagingEvent(_Inbound):
    """One item of an entry's `messaging` array."""

    sender: Participant = Field(default_factory=Participant)
    recipient: Participant = Field(default_factory=Participant)
    timestamp: int | None = None
    message: MessagePayload | None = None
    postback: PostbackPayload | None = None
    optin: OptinPayload | None = None


class WebhookChange(_Inbound):
    """One item of an entry's `changes` array."""

    field: str
    value: dict[str, Any] = Field(default_factory=dict)


class WebhookEntry(_Inbound):
    id: str | None = None
    time: int | None = None
    messaging: list[MessagingEvent] | None = None
    changes: list[WebhookChange] | None = None


class WebhookEnvelope(_Inbound):
    """Instagram webhook payload."""

    object: str | None = None
    entry: list[WebhookEntry] = Field(default_factory=list)


# =============================================================================
# Output records
# =============================================================================


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    def to_output(self) -> dict[str, Any]:
        """Serialize with camelCase keys, dropping absent optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MessagingRecord(_Record):
    sender_id: str | None = None
    recipient_id: str | None = None
    timestamp: int | None = None
    entry_id: str | None = None


class MessageRecord(MessagingRecord):
    event_type: Literal["message"] = "message"
    message_id: str | None = None
    text: str | None = None
    attachments: list[dict[str, Any]] | None = None
    quick_reply_payload: str | None = None
    is_echo: bool = False


class PostbackRecord(MessagingRecord):
    event_type: Literal["postback"] = "postback"
    payload: str | None = None
    title: str | None = None


class OptinRecord(MessagingRecord):
    event_type: Literal["optin"] = "optin"
    ref: str | None = None


class CommentRecord(_Record):
    event_type: Literal["comment"] = "comment"
    comment_id: str | None = None
    text: str | None = None
    media_id: str | None = None
    media_product_type: str | None = None
    from_user_id: str | None = None
    from_username: str | None = None
    entry_id: str | None = None
    timestamp: int | None = None
    parent_comment_id: str | None = None
    is_reply: bool = False


class MentionRecord(_Record):
    event_type: Literal["mention"] = "mention"
    mention_id: str | None = None
    media_id: str | None = None
    entry_id: str | None = None
    timestamp: int | None = None
    comment_id: str | None = None
    mention_type: Literal["comment", "story"] = "story"
    text: str | None = None


class WebhookDispatchResult(BaseModel):
    """Records of one delivery, one ordered list per output channel."""

    messages: list[MessageRecord] = Field(default_factory=list)
    postbacks: list[PostbackRecord] = Field(default_factory=list)
    optins: list[OptinRecord] = Field(default_factory=list)
    comments: list[CommentRecord] = Field(default_factory=list)
    mentions: list[MentionRecord] = Field(default_factory=list)

    def channels(self) -> list[list[dict[str, Any]]]:
        """Outputs in positional order: messages, postbacks, opt-ins, comments, mentions."""
        return [
            [record.to_output() for record in channel]
            for channel in (
                self.messages,
                self.postbacks,
                self.optins,
                self.comments,
                self.mentions,
            )
        ]

    def to_output(self) -> dict[str, list[dict[str, Any]]]:
        names = ("messages", "postbacks", "optins", "comments", "mentions")
        return dict(zip(names, self.channels()))

    @property
    def total(self) -> int:
        return (
            len(self.messages)
            + len(self.postbacks)
            + len(self.optins)
            + len(self.comments)
            + len(self.mentions)
        )
