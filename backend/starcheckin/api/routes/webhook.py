import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from starcheckin.api.deps import get_webhook_processor
from starcheckin.schemas import WebhookAck
from starcheckin.services.reconciliation import WebhookProcessor

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """
    Eventbrite notification endpoint.

    Always acknowledges with 200 straight away; hydration, storage and the
    broadcast run after the response and only ever report to the log.
    """
    body = await request.body()
    try:
        payload = json.loads(body) if body else None
    except (ValueError, UnicodeDecodeError):
        logger.info("Webhook body is not JSON, acknowledging anyway")
        payload = None

    background_tasks.add_task(processor.process, payload)
    return {"received": True}
