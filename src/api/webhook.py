"""Instagram webhook endpoints.

GET performs the subscription handshake; POST receives event deliveries,
checks their signature and fans them out into the five output channels
(messages, postbacks, opt-ins, comments, mentions). Other verbs get a 405
from the router.

Signature failures are logged and the delivery is still processed unless
STRICT_WEBHOOK_AUTH is enabled.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from src.api.dependencies import get_credential
from src.config import get_settings
from src.constants import WEBHOOK_SIGNATURE_HEADER
from src.logging_config import redact_tokens
from src.models.credential_models import InstagramCredential
from src.models.webhook_models import WebhookEnvelope
from src.services.signature import verify_signature
from src.services.webhook_dispatcher import (
    WebhookAuthError,
    dispatch_webhook,
    verify_handshake,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def verify_webhook(request: Request):
    """Instagram webhook verification endpoint.

    Reads only the verify token; no access token is required.
    """
    logger.info(
        "Webhook verification request received: %s",
        redact_tokens(dict(request.query_params)),
    )

    try:
        challenge = verify_handshake(
            mode=request.query_params.get("hub.mode"),
            token=request.query_params.get("hub.verify_token"),
            challenge=request.query_params.get("hub.challenge"),
            verify_token=get_settings().instagram_webhook_verify_token,
        )
    except WebhookAuthError as e:
        logger.warning("Webhook verification failed")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    logger.info("Webhook verified successfully")
    return PlainTextResponse(challenge)


@router.post("")
async def handle_webhook(
    request: Request,
    credential: InstagramCredential = Depends(get_credential),
):
    """Handle incoming Instagram webhook events."""
    settings = get_settings()
    raw_body = await request.body()
    signature = request.headers.get(WEBHOOK_SIGNATURE_HEADER)

    is_valid = verify_signature(
        raw_body,
        signature,
        credential.webhook_verify_token,
        strict=settings.strict_webhook_auth,
    )
    if not is_valid:
        if settings.strict_webhook_auth:
            logger.warning("Rejected webhook delivery: invalid signature")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Webhook authentication failed: Invalid signature",
            )
        logger.warning(
            "Invalid signature detected, continuing because strict webhook auth is off"
        )

    try:
        envelope = WebhookEnvelope.model_validate_json(raw_body)
    except ValidationError as e:
        logger.warning("Invalid webhook payload: %s", e.error_count())
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook payload",
        )

    result = dispatch_webhook(
        envelope,
        events=settings.webhook_events,
        ignore_echo=settings.webhook_ignore_echo,
    )
    logger.info(
        "Webhook delivery processed - object: %s, entries: %d, records: %d",
        envelope.object,
        len(envelope.entry),
        result.total,
    )
    return {"status": "ok", **result.to_output()}
