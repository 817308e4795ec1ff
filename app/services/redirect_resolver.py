"""
Redirect resolution for shortened URLs.

Follows HTTP redirects hop by hop with auto-follow disabled, so every hop is
bounded by a per-probe timeout, the total by a hop limit, and cycles are cut
by remembering visited URLs. Outcomes are cached for a day because shortener
destinations rarely change.
"""

import asyncio
from typing import Optional
from urllib.parse import urljoin

import httpx

from app.config.logging import get_logger
from app.config.settings import Settings
from app.core.cache import CacheKey
from app.core.redis_client import CacheClient
from app.services.interfaces import RedirectOutcome

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ContentIntakeBot/1.0; +https://intake.example.com/bot)"


class ProbeError(Exception):
    """A probe response fell outside the accepted 2xx-3xx range."""


class RedirectResolver:
    """Resolve a URL to its final destination through zero or more redirects."""

    MAX_REDIRECTS = 10
    TIMEOUT_MS = 2000
    CACHE_TTL = 86400  # 24 hours

    def __init__(
        self,
        cache: CacheClient,
        max_redirects: int = MAX_REDIRECTS,
        timeout_ms: int = TIMEOUT_MS,
        cache_ttl: int = CACHE_TTL,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.max_redirects = max_redirects
        self.timeout_ms = timeout_ms
        self.cache_ttl = cache_ttl
        self.user_agent = user_agent
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, cache: CacheClient, settings: Settings) -> "RedirectResolver":
        return cls(
            cache,
            max_redirects=settings.REDIRECT_MAX_HOPS,
            timeout_ms=settings.REDIRECT_TIMEOUT_MS,
            cache_ttl=settings.REDIRECT_CACHE_TTL,
            user_agent=settings.REDIRECT_USER_AGENT,
        )

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                follow_redirects=False,  # We track redirects manually
                timeout=httpx.Timeout(self.timeout_ms / 1000),
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def resolve_redirects(self, url: str) -> RedirectOutcome:
        """
        Follow redirects starting at url.

        Always returns an outcome: on unexpected failure the original URL with
        zero redirects. The outcome is cached either way so a broken target is
        not probed again until the entry expires.
        """
        cache_key = CacheKey.redirect(url)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            try:
                outcome = RedirectOutcome.from_dict(cached)
            except (KeyError, TypeError, ValueError):
                logger.warning("Ignoring malformed redirect cache entry", url=url)
            else:
                logger.debug("Redirect cache hit", url=url, final_url=outcome.final_url)
                return outcome

        try:
            outcome = await self._follow(url)
        except Exception as e:
            logger.error("Error following redirects", url=url, error=str(e))
            outcome = RedirectOutcome(final_url=url, redirect_count=0)

        await self.cache.set(cache_key, outcome.to_dict(), self.cache_ttl)
        return outcome

    async def _follow(self, url: str) -> RedirectOutcome:
        current_url = url
        redirect_count = 0
        visited = set()

        while redirect_count < self.max_redirects:
            if current_url in visited:
                logger.warning("Redirect loop detected", url=url, at=current_url)
                break
            visited.add(current_url)

            response = await self._probe(current_url)
            if response is None:
                break

            location = response.headers.get("location")
            if not (300 <= response.status_code < 400 and location):
                break

            next_url = urljoin(current_url, location)
            logger.debug(
                "Redirect hop",
                hop=redirect_count + 1,
                source=current_url,
                target=next_url,
                status=response.status_code,
            )
            current_url = next_url
            redirect_count += 1

        if redirect_count >= self.max_redirects:
            logger.warning("Max redirects reached", url=url, max_redirects=self.max_redirects)

        return RedirectOutcome(final_url=current_url, redirect_count=redirect_count)

    async def _probe(self, url: str) -> Optional[httpx.Response]:
        """HEAD the URL, falling back to a one-byte GET; None when both fail."""
        # Each probe gets a wall-clock deadline on top of httpx's per-phase timeouts
        deadline = self.timeout_ms / 1000
        try:
            return await asyncio.wait_for(self._head(url), deadline)
        except (httpx.HTTPError, httpx.InvalidURL, ProbeError, asyncio.TimeoutError) as head_error:
            logger.debug("HEAD probe failed, retrying with GET", url=url, error=repr(head_error))

        try:
            return await asyncio.wait_for(self._ranged_get(url), deadline)
        except (httpx.HTTPError, httpx.InvalidURL, ProbeError, asyncio.TimeoutError) as get_error:
            logger.warning("Failed to follow redirect", url=url, error=repr(get_error))
            return None

    async def _head(self, url: str) -> httpx.Response:
        response = await self.http_client.head(url)
        self._check_status(response)
        return response

    async def _ranged_get(self, url: str) -> httpx.Response:
        # Stream so the body is never downloaded, even if Range is ignored
        async with self.http_client.stream("GET", url, headers={"Range": "bytes=0-0"}) as response:
            self._check_status(response)
            return response

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        if not 200 <= response.status_code < 400:
            raise ProbeError(f"unexpected status {response.status_code}")
