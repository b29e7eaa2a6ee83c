import asyncio
import contextlib
import logging
from typing import Awaitable, List, TypeVar

from fastapi import APIRouter, HTTPException, Request, status
from app.core.config import settings
from app.fetch.client import ClientConfigError
from app.schemas import BatchRequest, FetchOutcome
from app.services.scrape import process_batch

logger = logging.getLogger(__name__)

router = APIRouter()

# nginx's non-standard code for a request the client abandoned
CLIENT_CLOSED_REQUEST = 499

T = TypeVar("T")

async def run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """
    Run `work` while polling the connection; cancel it if the client goes away
    so an abandoned batch stops holding fetch slots.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=settings.DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling batch")
                raise HTTPException(
                    status_code=CLIENT_CLOSED_REQUEST,
                    detail="Client closed request"
                )
    finally:
        if not task.done():
            task.cancel()
            # slots and the client are released before the response goes out
            with contextlib.suppress(asyncio.CancelledError):
                await task

@router.post("/api/scrape", response_model=List[FetchOutcome])
async def scrape(batch: BatchRequest, request: Request):
    """
    Fetch a batch of URLs under a rate limit.

    Returns one outcome per URL, in the order the URLs were given.
    Invalid headers or user agent reject the whole batch with 400.
    """
    try:
        return await run_until_disconnect(request, process_batch(batch))
    except ClientConfigError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Batch Scraper"}
