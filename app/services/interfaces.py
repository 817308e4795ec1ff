"""Domain types shared by the analysis orchestrator and its collaborators.

These are plain dataclasses; the HTTP layer converts them to and from the
pydantic models in app.schemas.analysis.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

UNKNOWN_LANGUAGE = "unknown"


@dataclass(frozen=True)
class AnalysisRequest:
    """One inbound message. Only `content` participates in caching."""
    parent_id: str
    customer_id: str
    sender_id: str
    message_id: str
    content: str


@dataclass(frozen=True)
class LanguageDetectionResult:
    language: str
    confidence: int  # 0-100

    @classmethod
    def unknown(cls) -> "LanguageDetectionResult":
        return cls(language=UNKNOWN_LANGUAGE, confidence=0)


@dataclass
class RedirectOutcome:
    """Where a URL ends up after following HTTP redirects."""
    final_url: str
    redirect_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RedirectOutcome":
        return cls(final_url=str(data["final_url"]), redirect_count=int(data["redirect_count"]))


@dataclass
class AnalysisResult:
    """Signal report for one message content."""
    language: str
    confidence: int
    cached: bool = False
    processing_time_ms: int = 0
    urls: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    public_ips: List[str] = field(default_factory=list)
    shorteners_used: List[str] = field(default_factory=list)

    # Placeholder risk signals; not computed yet
    risk_level: int = 0
    triggers: List[str] = field(default_factory=list)
    keyword_density: float = 0
    message_length_risk: float = 0
    mixed_content_risk: float = 0
    caps_ratio_risk: float = 0
    total_context_risk: float = 0
    burst_pattern_risk: float = 0
    off_hours_risk: float = 0
    weekend_spike: float = 0
    total_temporal_risk: float = 0
    suspicious_tld: str = ""
    phishing_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        """Create from dictionary, ignoring keys this version does not know."""
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})
