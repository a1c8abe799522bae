"""
API Endpoint for Content Analysis

FastAPI application that:
1. Accepts analysis requests (URL or base64 media) with optional bearer auth
2. Enforces plan-tiered daily quotas
3. Delegates to the external detection engine
4. Stores a report and commits quota for authenticated users
5. Mounts the admin, usage and publisher routers
"""

import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from verisource.admin import AppSettingsStore, MAINTENANCE_MODE_KEY
from verisource.audit import UsageRecorder, UsageRecord
from verisource.auth import Identity, get_client_metadata, resolve_identity
from verisource.database import (
    InputType,
    check_db_connection,
    get_db_context,
    get_session_factory,
    init_db,
)
from verisource.engine import HTTPDetectionEngine
from verisource.errors import ServiceUnavailable, VerisourceError, utc_timestamp
from verisource.pipeline import (
    AnalysisOptions,
    AnalysisPipeline,
    AnalysisRequest,
    Requester,
)
from verisource.registry import default_registry
from verisource.utils.config import get_settings

from api import audit, publishers, settings as settings_api, users

settings = get_settings()

# Configure logging to stdout
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,  # Override any existing config
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

VERSION = "1.0.0"

app = FastAPI(
    title="VeriSource API",
    description="Content verification: media forensics, fact-check scoring and plan quotas",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# The registry is built once per application and shared read-only
app.state.registry = default_registry()

app.include_router(audit.router)
app.include_router(users.router)
app.include_router(users.usage_router)
app.include_router(settings_api.router)
app.include_router(publishers.router)


# ============================================================================
# STARTUP / SHUTDOWN
# ============================================================================

def build_pipeline(registry) -> AnalysisPipeline:
    """Production pipeline wired to the configured detection engine."""
    gateway = HTTPDetectionEngine(
        url=settings.DETECTION_ENGINE_URL,
        api_key=settings.DETECTION_ENGINE_API_KEY,
        timeout=settings.DETECTION_ENGINE_TIMEOUT,
    )
    return AnalysisPipeline(
        gateway=gateway,
        session_factory=get_session_factory(),
        registry=registry,
        engine_timeout=settings.DETECTION_ENGINE_TIMEOUT,
    )


@app.on_event("startup")
async def startup_event():
    """Initialize database and detection engine client."""
    logger.info("Initializing database...")
    try:
        init_db()
        with get_db_context() as db:
            AppSettingsStore(db).seed_defaults()
        if not check_db_connection():
            logger.warning("Database connection check failed - continuing anyway")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        # Anonymous analysis still works without the database

    app.state.pipeline = build_pipeline(app.state.registry)
    logger.info(f"Detection engine: {settings.DETECTION_ENGINE_URL}")


@app.on_event("shutdown")
async def shutdown_event():
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.gateway.close()


def get_pipeline(request: Request) -> AnalysisPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = build_pipeline(request.app.state.registry)
        request.app.state.pipeline = pipeline
    return pipeline


def get_usage_recorder() -> UsageRecorder:
    return UsageRecorder(get_session_factory())


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(VerisourceError)
async def verisource_error_handler(request: Request, exc: VerisourceError):
    """Typed errors render their own stable shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(expose_details=settings.expose_error_details),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are a 400, not FastAPI's default 422."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))

    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "details": "; ".join(problems),
            "timestamp": utc_timestamp(),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "timestamp": utc_timestamp()},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Never leak a stack trace to the caller."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    details = str(exc) if settings.expose_error_details else "An unexpected error occurred"
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "details": details,
            "timestamp": utc_timestamp(),
        },
    )


# ============================================================================
# REQUEST MODELS
# ============================================================================

class AnalysisOptionsModel(BaseModel):
    premium: bool = False
    algorithms: List[str] = Field(default_factory=list)
    sensitivity: Literal["low", "medium", "high"] = "medium"


class AnalyzeContentRequest(BaseModel):
    """
    Request to analyze a piece of content.

    Exactly one of sourceUrl or base64Data must be provided.
    """
    input_type: Literal["image", "audio", "video", "screenshot", "url", "text"] = Field(
        ..., alias="inputType", description="Kind of content being analyzed"
    )
    source_url: Optional[str] = Field(
        default=None, alias="sourceUrl", description="URL of the content (for url input)"
    )
    base64_data: Optional[str] = Field(
        default=None, alias="base64Data", description="Base64-encoded media or text"
    )
    file_name: Optional[str] = Field(default=None, alias="fileName")
    file_hash: Optional[str] = Field(default=None, alias="fileHash", max_length=128)
    language: str = Field(default="en", max_length=10)
    options: AnalysisOptionsModel = Field(default_factory=AnalysisOptionsModel)

    class Config:
        populate_by_name = True

    def to_analysis_request(self) -> AnalysisRequest:
        return AnalysisRequest(
            input_type=InputType(self.input_type),
            source_url=self.source_url,
            base64_payload=self.base64_data,
            file_name=self.file_name,
            file_hash=self.file_hash,
            language=self.language,
            options=AnalysisOptions(
                premium=self.options.premium,
                algorithms=list(self.options.algorithms),
                sensitivity=self.options.sensitivity,
            ),
        )


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "VeriSource API"}


@app.get("/api/health")
async def health():
    """Detailed health check including database status."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "database": "connected" if check_db_connection() else "disconnected",
    }


def _ensure_not_in_maintenance() -> None:
    try:
        with get_db_context() as db:
            in_maintenance = AppSettingsStore(db).get_bool(MAINTENANCE_MODE_KEY)
    except SQLAlchemyError as e:
        logger.warning(f"Could not read maintenance flag, assuming off: {e}")
        return

    if in_maintenance:
        raise ServiceUnavailable("Analysis is temporarily disabled for maintenance")


@app.post("/api/analyze-content")
async def analyze_content(
    body: AnalyzeContentRequest,
    request: Request,
    identity: Identity = Depends(resolve_identity),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
    usage: UsageRecorder = Depends(get_usage_recorder),
):
    """
    Analyze content through the detection engine.

    Returns:
        200 {success, detection_summary, processing_time, user_plan}
        429 {error, current_usage, limit} when the daily quota is used up
        400/413/500 {error, details, timestamp} otherwise
    """
    request_id = uuid.uuid4().hex[:8]
    start = time.perf_counter()
    status_code = 200
    error_message = None

    try:
        _ensure_not_in_maintenance()
        outcome = await pipeline.run(
            body.to_analysis_request(),
            Requester(
                user_id=identity.user_id,
                plan=identity.plan,
                is_suspended=identity.is_suspended,
            ),
            request_id=request_id,
        )
        logger.info(
            f"[{request_id}] Analysis complete for "
            f"{'anonymous' if identity.is_anonymous else identity.user_id} "
            f"({identity.plan.value}) in {outcome.processing_time}ms"
        )
        return outcome.to_response()
    except VerisourceError as e:
        status_code = e.status_code
        error_message = e.message
        raise
    except Exception as e:
        status_code = 500
        error_message = str(e)
        raise
    finally:
        usage.record(UsageRecord(
            endpoint=request.url.path,
            method=request.method,
            status_code=status_code,
            response_time_ms=int((time.perf_counter() - start) * 1000),
            user_id=identity.user_id,
            client=get_client_metadata(request),
            error_message=error_message,
            metadata={
                "request_id": request_id,
                "input_type": body.input_type,
                "auth_degraded": identity.degraded_reason is not None,
            },
        ))


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    # Auth and database settings are read with os.getenv, not through Settings
    load_dotenv()

    uvicorn.run(
        "api.analyze:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
