"""Instagram webhook handshake and event fan-out.

A delivery is routed into five independent output channels (messages,
postbacks, opt-ins, comments, mentions). Order is preserved within a
channel; nothing is promised across channels.
"""

from collections.abc import Iterable

import logfire

from src.constants import WEBHOOK_SUBSCRIBE_MODE
from src.models.webhook_models import (
    CommentRecord,
    MentionRecord,
    MessageRecord,
    MessagingEvent,
    OptinRecord,
    PostbackRecord,
    WebhookChange,
    WebhookDispatchResult,
    WebhookEntry,
    WebhookEnvelope,
    WebhookEvent,
)


class WebhookAuthError(Exception):
    """Raised when a subscription handshake presents the wrong verify token."""


def verify_handshake(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    verify_token: str | None,
) -> str:
    """Return the challenge to echo back for a valid subscription request.

    Raises:
        WebhookAuthError: If the mode is not ``subscribe`` or the token differs.
    """
    if mode == WEBHOOK_SUBSCRIBE_MODE and token is not None and token == verify_token:
        return challenge if challenge is not None else ""
    raise WebhookAuthError("Webhook verification failed: Invalid verify token")


def dispatch_webhook(
    envelope: WebhookEnvelope,
    events: Iterable[WebhookEvent | str],
    ignore_echo: bool = True,
) -> WebhookDispatchResult:
    """Route every entry of a delivery to the enabled output channels.

    Args:
        envelope: Parsed webhook payload
        events: Subscription fields to route (see WebhookEvent)
        ignore_echo: Drop messaging events that echo our own messages

    Returns:
        One ordered list of records per channel; disabled or empty channels
        are empty lists.
    """
    enabled = _enabled_events(events)
    result = WebhookDispatchResult()

    for entry in envelope.entry:
        for messaging_event in entry.messaging or []:
            _route_messaging_event(entry, messaging_event, enabled, ignore_echo, result)
        for change in entry.changes or []:
            _route_change(entry, change, enabled, result)

    logfire.info(
        "Webhook delivery dispatched",
        object_type=envelope.object,
        entry_count=len(envelope.entry),
        messages=len(result.messages),
        postbacks=len(result.postbacks),
        optins=len(result.optins),
        comments=len(result.comments),
        mentions=len(result.mentions),
    )
    return result


def _enabled_events(events: Iterable[WebhookEvent | str]) -> set[WebhookEvent]:
    enabled = set()
    for event in events:
        try:
            enabled.add(WebhookEvent(event))
        except ValueError:
            logfire.warn("Ignoring unknown webhook event filter", event=str(event))
    return enabled


def _route_messaging_event(
    entry: WebhookEntry,
    event: MessagingEvent,
    enabled: set[WebhookEvent],
    ignore_echo: bool,
    result: WebhookDispatchResult,
) -> None:
    base = {
        "sender_id": event.sender.id,
        "recipient_id": event.recipient.id,
        "timestamp": event.timestamp,
        "entry_id": entry.id,
    }

    if event.message is not None and WebhookEvent.MESSAGES in enabled:
        message = event.message
        # An echo is skipped entirely, including any postback/opt-in it carries.
        if ignore_echo and message.is_echo:
            return
        result.messages.append(
            MessageRecord(
                **base,
                message_id=message.mid,
                text=message.text,
                attachments=message.attachments,
                quick_reply_payload=message.quick_reply.payload if message.quick_reply else None,
                is_echo=message.is_echo,
            )
        )

    if event.postback is not None and WebhookEvent.POSTBACKS in enabled:
        result.postbacks.append(
            PostbackRecord(
                **base,
                payload=event.postback.payload,
                title=event.postback.title,
            )
        )

    if event.optin is not None and WebhookEvent.OPTINS in enabled:
        result.optins.append(OptinRecord(**base, ref=event.optin.ref))


def _route_change(
    entry: WebhookEntry,
    change: WebhookChange,
    enabled: set[WebhookEvent],
    result: WebhookDispatchResult,
) -> None:
    value = change.value

    if change.field == WebhookEvent.COMMENTS.value and WebhookEvent.COMMENTS in enabled:
        media = _as_dict(value.get("media"))
        sender = _as_dict(value.get("from"))
        parent_id = value.get("parent_id")
        result.comments.append(
            CommentRecord(
                comment_id=value.get("id"),
                text=value.get("text"),
                media_id=media.get("id"),
                media_product_type=media.get("media_product_type"),
                from_user_id=sender.get("id"),
                from_username=sender.get("username"),
                entry_id=entry.id,
                timestamp=entry.time,
                parent_comment_id=parent_id or None,
                is_reply=bool(parent_id),
            )
        )

    elif change.field == WebhookEvent.MENTIONS.value and WebhookEvent.MENTIONS in enabled:
        comment_id = value.get("comment_id")
        result.mentions.append(
            MentionRecord(
                mention_id=value.get("id"),
                media_id=value.get("media_id"),
                entry_id=entry.id,
                timestamp=entry.time,
                comment_id=comment_id or None,
                mention_type="comment" if comment_id else "story",
                text=value.get("text") or None,
            )
        )


def _as_dict(value: object) -> dict:
    return value if isinstance(value, dict) else {}
