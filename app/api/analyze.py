"""Content analysis API routes."""

from fastapi import APIRouter, Request, status

from app.orchestrator.analysis_orchestrator import AnalysisOrchestrator
from app.schemas.analysis import AnalyzeRequest, AnalyzeResponse

router = APIRouter()


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    return request.app.state.orchestrator


@router.post("/analyze", response_model=AnalyzeResponse, status_code=status.HTTP_200_OK)
async def analyze(body: AnalyzeRequest, request: Request) -> AnalyzeResponse:
    """Analyze message content: language, links, phone numbers and public IPs."""
    result = await get_orchestrator(request).analyze(body.to_domain())
    return AnalyzeResponse.from_result(result)
