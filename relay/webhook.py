import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response

from relay.config import Settings
from relay.deps import get_pipeline, get_settings
from relay.pipeline import RelayPipeline

router = APIRouter()
logger = logging.getLogger(__name__)

SUBSCRIBE = "subscribe"


def verify_subscription(
    mode: str | None, token: str | None, challenge: str | None, secret: str
) -> str | None:
    """Challenge to echo back if the platform's handshake checks out, else None."""
    if mode == SUBSCRIBE and token is not None and token == secret:
        return challenge or ""
    return None


# --- Webhook verification ---
@router.get("/webhook", include_in_schema=False)
async def verify_webhook(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
):
    challenge = verify_subscription(
        hub_mode, hub_token, hub_challenge, settings.whatsapp_verify_token
    )
    if challenge is None:
        logger.warning("Webhook verification rejected (mode=%s)", hub_mode)
        return Response(status_code=403)
    logger.info("Webhook verified")
    return Response(content=challenge, media_type="text/plain")


# --- Inbound messages: acknowledge first, relay in the background ---
@router.post("/webhook", include_in_schema=False)
async def webhook(
    req: Request,
    bg: BackgroundTasks,
    pipeline: RelayPipeline = Depends(get_pipeline),
):
    try:
        payload = await req.json()
    except ValueError:
        logger.warning("Webhook body is not JSON, ignoring")
        return Response(status_code=200)

    bg.add_task(pipeline.handle_payload, payload)
    return Response(status_code=200)
