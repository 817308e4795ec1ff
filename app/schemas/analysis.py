"""Request and response schemas for the /analyze endpoint.

Field names follow the public wire contract, including its historical
spellings ("certainity", "lang_certainity").
"""

from typing import List

from pydantic import UUID4, BaseModel, ConfigDict, Field

from app.config.settings import settings
from app.services.interfaces import AnalysisRequest, AnalysisResult


class AnalyzeRequest(BaseModel):
    """Inbound message to analyse."""
    model_config = ConfigDict(extra="forbid")

    parentID: UUID4
    customerID: UUID4
    senderID: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=settings.MAX_CONTENT_LENGTH)
    messageID: UUID4

    def to_domain(self) -> AnalysisRequest:
        return AnalysisRequest(
            parent_id=str(self.parentID),
            customer_id=str(self.customerID),
            sender_id=self.senderID,
            message_id=str(self.messageID),
            content=self.content,
        )


class EnhancedAnalysis(BaseModel):
    """Extracted signals and placeholder risk metrics."""
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
    phishing_keywords: List[str] = Field(default_factory=list)
    urls: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    public_ips: List[str] = Field(default_factory=list)
    shortener_used: List[str] = Field(default_factory=list)


class Analysis(BaseModel):
    language: str
    lang_certainity: int = Field(ge=0, le=100)
    cached: bool
    processing_time_ms: int
    risk_level: int = 0
    triggers: List[str] = Field(default_factory=list)
    enhanced: EnhancedAnalysis


class AnalyzeResponse(BaseModel):
    status: str = "safe"
    certainity: int = 0
    message: str = "no analysis"
    customer_whitelisted: bool = False
    analysis: Analysis

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalyzeResponse":
        return cls(
            analysis=Analysis(
                language=result.language,
                lang_certainity=result.confidence,
                cached=result.cached,
                processing_time_ms=result.processing_time_ms,
                risk_level=result.risk_level,
                triggers=result.triggers,
                enhanced=EnhancedAnalysis(
                    keyword_density=result.keyword_density,
                    message_length_risk=result.message_length_risk,
                    mixed_content_risk=result.mixed_content_risk,
                    caps_ratio_risk=result.caps_ratio_risk,
                    total_context_risk=result.total_context_risk,
                    burst_pattern_risk=result.burst_pattern_risk,
                    off_hours_risk=result.off_hours_risk,
                    weekend_spike=result.weekend_spike,
                    total_temporal_risk=result.total_temporal_risk,
                    suspicious_tld=result.suspicious_tld,
                    phishing_keywords=result.phishing_keywords,
                    urls=result.urls,
                    phones=result.phones,
                    public_ips=result.public_ips,
                    shortener_used=result.shorteners_used,
                ),
            )
        )
