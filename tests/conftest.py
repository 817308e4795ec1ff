"""Shared fixtures for unit and integration tests."""

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from app.services.language_detector import LanguageDetector


class InMemoryCache:
    """Stand-in for CacheClient backed by a dict, with the same total semantics."""

    def __init__(self, available: bool = True):
        self.available = available
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.get_calls: List[str] = []
        self.set_calls: List[Tuple[str, int]] = []

    async def get(self, key: str) -> Optional[Any]:
        self.get_calls.append(key)
        if not self.available or key not in self.store:
            return None
        return json.loads(self.store[key])

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self.set_calls.append((key, ttl_seconds))
        if not self.available:
            return
        self.store[key] = json.dumps(value, default=str)
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self.store.pop(key, None)

    async def is_healthy(self) -> bool:
        return self.available


class StaticBackend:
    """Detector backend returning a fixed ranking and counting invocations."""

    def __init__(self, candidates: Sequence[Tuple[str, float]] = (("eng", 0.9),)):
        self.candidates = list(candidates)
        self.calls = 0

    def __call__(self, text: str) -> List[Tuple[str, float]]:
        self.calls += 1
        return list(self.candidates)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def unavailable_cache():
    return InMemoryCache(available=False)


@pytest.fixture
def english_backend():
    return StaticBackend([("eng", 0.92), ("sco", 0.05)])


@pytest.fixture
def english_detector(english_backend):
    return LanguageDetector(backend=english_backend)
