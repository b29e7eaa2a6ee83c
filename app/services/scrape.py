import logging
from typing import List, Optional

from app.core.config import settings
from app.fetch.client import build_client, build_client_config
from app.fetch.dispatcher import dispatch
from app.schemas import BatchRequest, FetchOutcome

logger = logging.getLogger(__name__)

def effective_rate(rate_limit: Optional[int]) -> int:
    """
    Rate used for a batch.
    Absent -> configured default (5), non-positive -> 1.
    """
    if rate_limit is None:
        rate_limit = settings.DEFAULT_RATE_LIMIT
    return max(rate_limit, 1)

async def process_batch(request: BatchRequest) -> List[FetchOutcome]:
    """
    Main pipeline for a scrape batch.

    1. Validate headers and resolve proxy / user-agent into one client config
       (raises ClientConfigError before any fetch)
    2. Fetch all URLs through the rate-limited dispatcher
    3. Return outcomes in input order
    """
    config = build_client_config(
        headers=request.headers,
        proxy=request.proxy,
        user_agent=request.user_agent,
        fallback_proxy=settings.DEFAULT_PROXY,
    )

    if not request.urls:
        return []

    rate = effective_rate(request.rate_limit)
    logger.info("Scraping %d URLs at rate %d/s", len(request.urls), rate)

    async with build_client(config) as client:
        outcomes = await dispatch(client, request.urls, rate)

    succeeded = sum(1 for outcome in outcomes if outcome.success)
    logger.info("Batch complete: %d succeeded / %d attempted", succeeded, len(outcomes))
    return outcomes
