import logging
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from starcheckin.core.exceptions import (
    MalformedNotification,
    RepositoryUnavailable,
    Unauthenticated,
    UpstreamError,
)
from starcheckin.schemas import AttendeeResult, AttendeeUpdate, WEBHOOK_MERGE_FIELDS
from starcheckin.services.attendee_repository import AttendeeRepository
from starcheckin.services.broadcaster import Broadcaster
from starcheckin.services.webhook_normalizer import WebhookNormalizer

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Applies canonical updates to the repository and fans the stored result out."""

    def __init__(self, repository: AttendeeRepository, broadcaster: Broadcaster):
        self.repository = repository
        self.broadcaster = broadcaster

    async def reconcile(self, update: AttendeeUpdate) -> Optional[AttendeeResult]:
        """
        Upsert the update and broadcast the merged record as stored.

        Returns None when storage failed; nothing is broadcast in that case
        and the update is not retried.
        """
        try:
            stored = await run_in_threadpool(self.repository.upsert, update, WEBHOOK_MERGE_FIELDS)
        except RepositoryUnavailable as e:
            logger.error(f"❌ Dropping update for attendee {update.id}, storage unavailable: {e}")
            return None

        await self.broadcaster.broadcast(stored)
        logger.info(f"✅ Attendee {stored.id} reconciled (status={stored.status})")
        return stored


class WebhookProcessor:
    """
    Second phase of the webhook contract: runs after the notifier already got
    its acknowledgement, so every failure ends here in the log.
    """

    def __init__(self, normalizer: WebhookNormalizer, engine: ReconciliationEngine):
        self.normalizer = normalizer
        self.engine = engine

    async def process(self, payload: Any) -> Optional[AttendeeResult]:
        try:
            update = await run_in_threadpool(self.normalizer.normalize, payload)
        except MalformedNotification as e:
            logger.info(f"Ignoring webhook notification: {e}")
            return None
        except Unauthenticated:
            logger.warning("⚠️ Webhook dropped: no Eventbrite credential saved to hydrate the attendee")
            return None
        except UpstreamError as e:
            logger.error(f"❌ Webhook dropped: attendee hydration failed: {e}")
            return None
        except RepositoryUnavailable as e:
            logger.error(f"❌ Webhook dropped: credential lookup failed: {e}")
            return None

        return await self.engine.reconcile(update)
