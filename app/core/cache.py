"""
Cache key derivation for analysis results and redirect outcomes.

Each kind of cached value lives in its own key namespace so that TTLs and
invalidation stay independent.
"""

import hashlib

ANALYSIS_NAMESPACE = "analysis"
REDIRECT_NAMESPACE = "redirect"


def generate_hash(value: str) -> str:
    """MD5 hex digest of a string; used for distribution, not security."""
    return hashlib.md5(value.encode("utf-8", "surrogatepass")).hexdigest()


class CacheKey:
    """Cache key generators"""

    @staticmethod
    def analysis(content: str) -> str:
        """Generate cache key for an analysis result of the given content"""
        return f"{ANALYSIS_NAMESPACE}:{generate_hash(content)}"

    @staticmethod
    def redirect(url: str) -> str:
        """Generate cache key for the redirect outcome of a starting URL"""
        return f"{REDIRECT_NAMESPACE}:{generate_hash(url)}"
