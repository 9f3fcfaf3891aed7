import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from starcheckin.api.deps import get_credential_store, get_eventbrite_client
from starcheckin.core.exceptions import RepositoryUnavailable, UpstreamError
from starcheckin.schemas import TokenExchangeRequest
from starcheckin.services.credential_store import CredentialStore
from starcheckin.services.eventbrite_client import EventbriteClient

router = APIRouter()
logger = logging.getLogger(__name__)

async def read_exchange_request(request: Request) -> TokenExchangeRequest:
    """Parse the body leniently: anything without a usable code is a 400, never a 422."""
    raw = await request.body()
    try:
        data = json.loads(raw) if raw else {}
        return TokenExchangeRequest.model_validate(data if isinstance(data, dict) else {})
    except (ValueError, ValidationError):
        return TokenExchangeRequest()

@router.post("/exchange_token")
async def exchange_token(
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    eventbrite: EventbriteClient = Depends(get_eventbrite_client),
):
    """
    Exchange an Eventbrite authorization code for a token and keep it as the
    active credential. Returns Eventbrite's token payload unchanged.
    """
    body = await read_exchange_request(request)
    if not body.code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing code")

    try:
        payload = await run_in_threadpool(eventbrite.exchange_code, body.code)
        await run_in_threadpool(store.set_credential, payload["access_token"], payload.get("refresh_token"))
    except UpstreamError as e:
        logger.error(f"❌ Token exchange failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Token exchange failed"
        )
    except RepositoryUnavailable as e:
        logger.error(f"❌ Token storage failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not store credential"
        )

    logger.info("✅ Eventbrite authorization completed")
    return payload
