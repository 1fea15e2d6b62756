"""
CATTO API Routes

FastAPI routes for case-report novelty screening.
"""

from __future__ import annotations

from typing import Callable, Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from catto import __version__
from catto.composition.email_report import EmailDraft, build_email_draft
from catto.config import get_settings
from catto.core.exceptions import ConfigurationError
from catto.core.schemas import AnalysisResult, CaseInput
from catto.interface.messages import error_code_for, user_message
from catto.llm.factory import create_provider
from catto.observability.metrics import metrics
from catto.observability.tracer import tracer
from catto.orchestration.graph import CATTORunner

# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================


class AnalyzeRequest(BaseModel):
    """Request to analyse one case report."""

    case: CaseInput
    provider: Literal["gemini", "openai"] | None = Field(
        default=None, description="LLM provider. If None, uses LLM_DEFAULT_PROVIDER"
    )
    model: str | None = Field(default=None, description="Model name override")
    api_key: str | None = Field(
        default=None, description="Per-request API key; falls back to the configured key"
    )


class AnalyzeResponse(BaseModel):
    """Verified analysis and the email draft built from it."""

    run_id: str
    status: str
    result: AnalysisResult
    email: EmailDraft


class AnalyzeError(BaseModel):
    """Body of a failed analysis (HTTP 502)."""

    run_id: str | None = None
    error_code: str
    message: str
    retryable: bool


# =============================================================================
# DEPENDENCIES
# =============================================================================

RunnerFactory = Callable[[AnalyzeRequest], CATTORunner]


def default_runner_factory(request: AnalyzeRequest) -> CATTORunner:
    llm = create_provider(request.provider, request.model, request.api_key)
    return CATTORunner(llm)


def get_runner_factory() -> RunnerFactory:
    """Overridable in tests via app.dependency_overrides."""
    return default_runner_factory


# =============================================================================
# ROUTER
# =============================================================================

router = APIRouter(prefix="/api/v1", tags=["catto"])


def _bad_gateway(error: AnalyzeError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error.model_dump())


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    request: AnalyzeRequest, runner_factory: RunnerFactory = Depends(get_runner_factory)
) -> AnalyzeResponse:
    """Run the full screening pipeline for a case.

    A failed run yields HTTP 502 with a translated message and a retryable
    flag; no partial report is returned.
    """
    language = get_settings().features.ui_language
    metrics.counter("catto.api.analyze")

    with tracer.start_span("api.analyze") as span:
        try:
            runner = runner_factory(request)
        except ConfigurationError as e:
            code = error_code_for(e)
            span.set_attribute("error_code", code)
            raise _bad_gateway(
                AnalyzeError(
                    error_code=code, message=user_message(code, language), retryable=e.retryable
                )
            ) from e

        outcome = await runner.run(request.case)
        span.set_attribute("run_id", outcome.run_id)
        span.set_attribute("status", outcome.status.value)

        if outcome.result is None:
            raise _bad_gateway(
                AnalyzeError(
                    run_id=outcome.run_id,
                    error_code=outcome.error_code or "unknown",
                    message=outcome.error_message or user_message("unknown", language),
                    retryable=outcome.retryable,
                )
            )

        return AnalyzeResponse(
            run_id=outcome.run_id,
            status=outcome.status.value,
            result=outcome.result,
            email=build_email_draft(outcome.result, request.case),
        )


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status and version info
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "catto",
    }


@router.get("/metrics")
async def get_metrics() -> dict:
    """Current in-process metric values."""
    return metrics.get_all()


# =============================================================================
# APP
# =============================================================================


def create_app():
    """Create FastAPI application.

    Returns:
        Configured FastAPI app
    """
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    app = FastAPI(
        title="CATTO Novelty Screener API",
        description="Case report novelty screening against PubMed with verified evidence",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


# Create app instance for uvicorn
app = create_app()


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for the catto-serve script."""
    import uvicorn

    from catto.observability.log_config import configure_logging

    configure_logging()
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    serve()
