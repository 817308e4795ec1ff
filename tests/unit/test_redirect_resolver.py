"""
Unit tests for RedirectResolver - hop-by-hop redirect following against a
mocked HTTP transport, probe fallback and outcome caching.
"""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.cache import CacheKey
from app.services.interfaces import RedirectOutcome
from app.services.redirect_resolver import RedirectResolver


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


def redirect(location: str, status: int = 301) -> httpx.Response:
    return httpx.Response(status, headers={"Location": location})


def make_resolver(cache, handler, **kwargs) -> RedirectResolver:
    transport = RecordingTransport(handler)
    resolver = RedirectResolver(cache, transport=transport, **kwargs)
    resolver.transport = transport
    return resolver


class TestRedirectFollowing:

    @pytest.mark.asyncio
    async def test_single_hop(self, cache):
        def handler(request):
            if request.url.host == "bit.ly":
                return redirect("https://example.com/landing")
            return httpx.Response(200)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("http://bit.ly/x")

        assert outcome == RedirectOutcome(final_url="https://example.com/landing", redirect_count=1)
        assert all(request.method == "HEAD" for request in resolver.transport.requests)
        await resolver.aclose()

    @pytest.mark.asyncio
    async def test_no_redirect(self, cache):
        resolver = make_resolver(cache, lambda request: httpx.Response(200))

        outcome = await resolver.resolve_redirects("https://example.com/")

        assert outcome == RedirectOutcome(final_url="https://example.com/", redirect_count=0)

    @pytest.mark.asyncio
    async def test_loop_is_cut(self, cache):
        def handler(request):
            if request.url.path == "/a":
                return redirect("https://loop.test/b", 302)
            return redirect("https://loop.test/a", 302)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://loop.test/a")

        assert outcome == RedirectOutcome(final_url="https://loop.test/a", redirect_count=2)
        assert len(resolver.transport.requests) == 2

    @pytest.mark.asyncio
    async def test_endless_chain_stops_at_hop_limit(self, cache):
        def handler(request):
            step = int(request.url.path.strip("/") or 0)
            return redirect(f"https://chain.test/{step + 1}")

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://chain.test/0")

        assert outcome == RedirectOutcome(final_url="https://chain.test/10", redirect_count=10)
        assert len(resolver.transport.requests) == 10

    @pytest.mark.asyncio
    async def test_custom_hop_limit(self, cache):
        def handler(request):
            step = int(request.url.path.strip("/") or 0)
            return redirect(f"https://chain.test/{step + 1}")

        resolver = make_resolver(cache, handler, max_redirects=3)
        outcome = await resolver.resolve_redirects("https://chain.test/0")

        assert outcome.redirect_count == 3
        assert outcome.final_url == "https://chain.test/3"

    @pytest.mark.asyncio
    async def test_relative_location_is_resolved(self, cache):
        def handler(request):
            if request.url.path == "/go":
                return redirect("/landing?ref=sms")
            return httpx.Response(200)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://tinyurl.com/go")

        assert outcome == RedirectOutcome(final_url="https://tinyurl.com/landing?ref=sms", redirect_count=1)

    @pytest.mark.asyncio
    async def test_path_relative_location_is_resolved(self, cache):
        def handler(request):
            if request.url.path == "/a/b/go":
                return redirect("next?x=1")
            return httpx.Response(200)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://tinyurl.com/a/b/go")

        assert outcome == RedirectOutcome(final_url="https://tinyurl.com/a/b/next?x=1", redirect_count=1)

    @pytest.mark.asyncio
    async def test_redirect_without_location_stops(self, cache):
        resolver = make_resolver(cache, lambda request: httpx.Response(302))

        outcome = await resolver.resolve_redirects("https://bit.ly/broken")

        assert outcome == RedirectOutcome(final_url="https://bit.ly/broken", redirect_count=0)

    @pytest.mark.asyncio
    async def test_sends_user_agent(self, cache):
        resolver = make_resolver(cache, lambda request: httpx.Response(200), user_agent="IntakeTest/1.0")

        await resolver.resolve_redirects("https://example.com/")

        assert resolver.transport.requests[0].headers["User-Agent"] == "IntakeTest/1.0"


class TestProbeFallback:

    @pytest.mark.asyncio
    async def test_head_rejected_falls_back_to_ranged_get(self, cache):
        def handler(request):
            if request.method == "HEAD":
                return httpx.Response(405)
            if request.url.path == "/x":
                return redirect("https://example.com/final", 302)
            return httpx.Response(206)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://ow.ly/x")

        assert outcome == RedirectOutcome(final_url="https://example.com/final", redirect_count=1)
        gets = [request for request in resolver.transport.requests if request.method == "GET"]
        assert len(gets) == 2
        assert all(request.headers["Range"] == "bytes=0-0" for request in gets)

    @pytest.mark.asyncio
    async def test_head_network_error_falls_back_to_get(self, cache):
        def handler(request):
            if request.method == "HEAD":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://t.co/abc")

        assert outcome == RedirectOutcome(final_url="https://t.co/abc", redirect_count=0)
        assert [request.method for request in resolver.transport.requests] == ["HEAD", "GET"]

    @pytest.mark.asyncio
    async def test_head_timeout_falls_back_to_get(self, cache):
        def handler(request):
            if request.method == "HEAD":
                raise httpx.ReadTimeout("timed out", request=request)
            return redirect("https://example.com/slow-head")

        def second_hop(request):
            if request.url.host == "example.com":
                return httpx.Response(200)
            return handler(request)

        resolver = make_resolver(cache, second_hop)
        outcome = await resolver.resolve_redirects("https://goo.gl/abc")

        assert outcome == RedirectOutcome(final_url="https://example.com/slow-head", redirect_count=1)

    @pytest.mark.asyncio
    async def test_both_probes_fail_keeps_current_url(self, cache):
        def handler(request):
            if request.method == "HEAD":
                raise httpx.ConnectError("unreachable", request=request)
            return httpx.Response(500)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://bit.ly/dead")

        assert outcome == RedirectOutcome(final_url="https://bit.ly/dead", redirect_count=0)

    @pytest.mark.asyncio
    async def test_stalled_head_is_cut_at_deadline(self, cache):
        async def handler(request):
            if request.method == "HEAD":
                await asyncio.sleep(5)
            return httpx.Response(200)

        resolver = make_resolver(cache, handler, timeout_ms=100)
        started = time.perf_counter()
        outcome = await resolver.resolve_redirects("https://bit.ly/stalled")

        assert time.perf_counter() - started < 1
        assert outcome == RedirectOutcome(final_url="https://bit.ly/stalled", redirect_count=0)
        assert [request.method for request in resolver.transport.requests] == ["HEAD", "GET"]

    @pytest.mark.asyncio
    async def test_stalled_peer_bounded_per_probe(self, cache):
        async def handler(request):
            await asyncio.sleep(5)
            return redirect("https://example.com/never")

        resolver = make_resolver(cache, handler, timeout_ms=100)
        started = time.perf_counter()
        outcome = await resolver.resolve_redirects("https://bit.ly/slow")

        assert time.perf_counter() - started < 1
        assert outcome == RedirectOutcome(final_url="https://bit.ly/slow", redirect_count=0)

    @pytest.mark.asyncio
    async def test_failure_mid_chain_keeps_last_reached_url(self, cache):
        def handler(request):
            if request.url.host == "bit.ly":
                return redirect("https://tracker.test/click")
            return httpx.Response(503)

        resolver = make_resolver(cache, handler)
        outcome = await resolver.resolve_redirects("https://bit.ly/abc")

        assert outcome == RedirectOutcome(final_url="https://tracker.test/click", redirect_count=1)


class TestOutcomeCaching:

    @pytest.mark.asyncio
    async def test_outcome_is_cached_for_a_day(self, cache):
        def handler(request):
            if request.url.host == "bit.ly":
                return redirect("https://example.com/B")
            return httpx.Response(200)

        resolver = make_resolver(cache, handler)
        await resolver.resolve_redirects("http://bit.ly/x")

        key = CacheKey.redirect("http://bit.ly/x")
        assert key.startswith("redirect:")
        assert cache.ttls[key] == 86400
        assert await cache.get(key) == {"final_url": "https://example.com/B", "redirect_count": 1}

    @pytest.mark.asyncio
    async def test_cache_hit_does_no_network_io(self, cache):
        key = CacheKey.redirect("http://bit.ly/x")
        await cache.set(key, {"final_url": "https://cached.example/", "redirect_count": 2}, 86400)
        resolver = make_resolver(cache, lambda request: httpx.Response(200))

        outcome = await resolver.resolve_redirects("http://bit.ly/x")

        assert outcome == RedirectOutcome(final_url="https://cached.example/", redirect_count=2)
        assert resolver.transport.requests == []

    @pytest.mark.asyncio
    async def test_malformed_cache_entry_is_ignored(self, cache):
        key = CacheKey.redirect("http://bit.ly/x")
        await cache.set(key, {"unexpected": True}, 86400)
        resolver = make_resolver(cache, lambda request: httpx.Response(200))

        outcome = await resolver.resolve_redirects("http://bit.ly/x")

        assert outcome == RedirectOutcome(final_url="http://bit.ly/x", redirect_count=0)
        assert len(resolver.transport.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_resolution_is_cached(self, cache):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        resolver = make_resolver(cache, handler)
        await resolver.resolve_redirects("https://bit.ly/dead")

        assert await cache.get(CacheKey.redirect("https://bit.ly/dead")) == {
            "final_url": "https://bit.ly/dead",
            "redirect_count": 0,
        }

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_original_url(self, cache):
        resolver = make_resolver(cache, lambda request: httpx.Response(200))

        with patch.object(resolver, "_follow", AsyncMock(side_effect=RuntimeError("boom"))):
            outcome = await resolver.resolve_redirects("https://bit.ly/x")

        assert outcome == RedirectOutcome(final_url="https://bit.ly/x", redirect_count=0)
        assert CacheKey.redirect("https://bit.ly/x") in cache.store

    @pytest.mark.asyncio
    async def test_works_without_cache(self, unavailable_cache):
        resolver = make_resolver(unavailable_cache, lambda request: httpx.Response(200))

        outcome = await resolver.resolve_redirects("https://example.com/")

        assert outcome.redirect_count == 0
        assert unavailable_cache.store == {}


class TestConfiguration:

    def test_from_settings(self, cache):
        settings = MagicMock()
        settings.REDIRECT_MAX_HOPS = 5
        settings.REDIRECT_TIMEOUT_MS = 1500
        settings.REDIRECT_CACHE_TTL = 3600
        settings.REDIRECT_USER_AGENT = "IntakeTest/2.0"

        resolver = RedirectResolver.from_settings(cache, settings)

        assert resolver.max_redirects == 5
        assert resolver.timeout_ms == 1500
        assert resolver.cache_ttl == 3600
        assert resolver.user_agent == "IntakeTest/2.0"

    @pytest.mark.asyncio
    async def test_client_never_auto_follows(self, cache):
        resolver = RedirectResolver(cache)

        assert resolver.http_client.follow_redirects is False
        assert resolver.http_client.timeout.read == pytest.approx(2.0)
        await resolver.aclose()
