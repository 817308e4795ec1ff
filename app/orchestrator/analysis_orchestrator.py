"""Cache-aside analysis of message content.

Ties together language detection, URL / phone / IP extraction and redirect
resolution of shortened links. Results are cached by content hash for a
short window; the cache is optional for correctness, so every cache failure
simply means the work is redone.
"""

import asyncio
import time
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

from app.config.logging import get_logger
from app.core.cache import CacheKey
from app.core.redis_client import CacheClient
from app.services.extractors import UrlExtractor, dedupe, extract_phones, extract_public_ips
from app.services.interfaces import AnalysisRequest, AnalysisResult
from app.services.language_detector import LanguageDetector
from app.services.redirect_resolver import RedirectResolver
from app.services.shorteners import is_shortener

logger = get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class AnalysisOrchestrator:
    """Entry point for analysing one message."""

    CACHE_TTL = 60  # seconds

    def __init__(
        self,
        cache: CacheClient,
        language_detector: LanguageDetector,
        redirect_resolver: RedirectResolver,
        url_extractor: Optional[UrlExtractor] = None,
        phone_region: str = "BE",
        cache_ttl: int = CACHE_TTL,
    ):
        self.cache = cache
        self.language_detector = language_detector
        self.redirect_resolver = redirect_resolver
        self.url_extractor = url_extractor or UrlExtractor()
        self.phone_region = phone_region
        self.cache_ttl = cache_ttl

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Return the analysis for request.content, from cache when possible."""
        start = time.perf_counter()
        logger.debug(
            "Analyzing content",
            message_id=request.message_id,
            content_length=len(request.content),
        )

        cache_key = CacheKey.analysis(request.content)
        cached = await self._load(cache_key)
        if cached is not None:
            cached.cached = True
            cached.processing_time_ms = _elapsed_ms(start)
            logger.info(
                "Returning cached analysis result",
                message_id=request.message_id,
                language=cached.language,
                processing_time_ms=cached.processing_time_ms,
            )
            return cached

        result = await self._build(request.content)
        result.processing_time_ms = _elapsed_ms(start)
        await self.cache.set(cache_key, result.to_dict(), self.cache_ttl)

        result.processing_time_ms = _elapsed_ms(start)
        logger.info(
            "Analysis completed",
            message_id=request.message_id,
            language=result.language,
            confidence=result.confidence,
            cached=False,
            processing_time_ms=result.processing_time_ms,
        )
        return result

    async def _load(self, cache_key: str) -> Optional[AnalysisResult]:
        data = await self.cache.get(cache_key)
        if data is None:
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed analysis cache entry", key=cache_key, kind=type(data).__name__)
            return None
        try:
            return AnalysisResult.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring malformed analysis cache entry", key=cache_key, error=str(e))
            return None

    async def _build(self, content: str) -> AnalysisResult:
        language = self.language_detector.detect(content)
        urls, shorteners = await self._resolve_urls(self.url_extractor.extract(content))

        return AnalysisResult(
            language=language.language,
            confidence=language.confidence,
            cached=False,
            urls=urls,
            phones=extract_phones(content, self.phone_region),
            public_ips=extract_public_ips(content),
            shorteners_used=shorteners,
        )

    async def _resolve_urls(self, urls: List[str]) -> Tuple[List[str], List[str]]:
        """Replace shortener links by their final destination."""
        shorteners = []
        pending = []
        for index, url in enumerate(urls):
            try:
                hostname = urlsplit(url).hostname
            except ValueError as e:
                logger.warning("Failed to parse URL", url=url, error=str(e))
                continue
            if hostname and is_shortener(hostname):
                logger.debug("Detected shortener", hostname=hostname, url=url)
                shorteners.append(hostname)
                pending.append(index)

        final_urls = list(urls)
        if pending:
            outcomes = await asyncio.gather(
                *(self.redirect_resolver.resolve_redirects(urls[index]) for index in pending)
            )
            for index, outcome in zip(pending, outcomes):
                logger.debug(
                    "Followed redirects",
                    url=urls[index],
                    final_url=outcome.final_url,
                    redirect_count=outcome.redirect_count,
                )
                final_urls[index] = outcome.final_url

        return dedupe(final_urls), dedupe(shorteners)
