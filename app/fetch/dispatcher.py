import asyncio
import logging
from typing import List, Optional, Sequence

import httpx

from app.fetch.utils import is_html_content_type, make_snippet
from app.schemas import FetchOutcome

logger = logging.getLogger(__name__)

NON_HTML_ERROR = "Skipped non-HTML content"

def pacing_delay(rate: int) -> float:
    """Seconds between fetch starts: 1000ms / rate."""
    return 1.0 / max(rate, 1)

class Pacer:
    """Spaces successive wait() returns at least `interval` seconds apart."""

    def __init__(self, interval: float):
        self.interval = interval
        self._lock = asyncio.Lock()
        self._next_start: Optional[float] = None

    async def wait(self) -> None:
        async with self._lock:
            loop = asyncio.get_running_loop()
            if self._next_start is not None:
                # asyncio timers may fire up to one clock tick early
                remaining = self._next_start - loop.time()
                while remaining > 0:
                    await asyncio.sleep(remaining)
                    remaining = self._next_start - loop.time()
            self._next_start = loop.time() + self.interval

def _transport_error_text(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__

async def _read_text(response: httpx.Response) -> str:
    """Response body as text; a read or decode failure gives an empty body."""
    try:
        await response.aread()
        return response.text
    except (httpx.HTTPError, UnicodeDecodeError, LookupError) as exc:
        logger.debug("Could not read body of %s: %s", response.url, exc)
        return ""

async def fetch_one(client: httpx.AsyncClient, url: str) -> FetchOutcome:
    """
    GET one URL and classify the response into a FetchOutcome.

    Never raises for per-URL problems: transport errors, malformed URLs
    (including hosts IDNA rejects, on the request or on a redirect),
    non-2xx statuses and non-HTML content all become failed outcomes.
    """
    try:
        async with client.stream("GET", url) as response:
            if response.is_success:
                if not is_html_content_type(response.headers.get("content-type")):
                    return FetchOutcome.failed(url, NON_HTML_ERROR)
                body = await _read_text(response)
                return FetchOutcome.ok(url, make_snippet(body))
            return FetchOutcome.failed(url, f"HTTP {response.status_code}")
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        # ValueError covers idna.IDNAError raised while parsing hostnames
        logger.debug("Fetch failed for %s: %r", url, exc)
        return FetchOutcome.failed(url, _transport_error_text(exc))

async def dispatch(client: httpx.AsyncClient, urls: Sequence[str], rate: int) -> List[FetchOutcome]:
    """
    Fetch every URL with at most `rate` requests in flight and fetch starts
    spaced 1 / rate seconds apart.

    A pool of `rate` workers drains a queue of (index, url) items and writes
    each outcome into its input slot, so completion order never changes
    output order. Cancelling the coroutine cancels all workers; in-flight
    responses are closed and their slots released.
    """
    if not urls:
        return []

    rate = max(rate, 1)
    slots = asyncio.Semaphore(rate)
    pacer = Pacer(pacing_delay(rate))
    queue = asyncio.Queue()
    for item in enumerate(urls):
        queue.put_nowait(item)

    results: List[Optional[FetchOutcome]] = [None] * len(urls)

    async def worker() -> None:
        while True:
            try:
                index, url = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            async with slots:
                await pacer.wait()
                results[index] = await fetch_one(client, url)

    workers = [asyncio.ensure_future(worker()) for _ in range(min(rate, len(urls)))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    missing = [urls[i] for i, outcome in enumerate(results) if outcome is None]
    if missing:
        raise RuntimeError(f"Dispatcher finished without outcomes for {missing}")
    return results  # type: ignore[return-value]
