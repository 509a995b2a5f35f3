"""
Research Canvas

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from src.ai.errors import CompletionError
from src.config import get_settings
from src.database import init_db, close_db
from src.api.v1 import router as api_v1_router
from src.api.middleware.request_id import RequestIdMiddleware
from src.kernel.reports.report_store import ReportNotFoundError
from src.schemas.common import HealthResponse
from src.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")
    if not settings.ai_configured:
        logger.warning("No LLM API key configured; generation endpoints will return 400")

    yield

    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Research Canvas

    Turn saved paper searches and PDF batches into cited research reports.

    ## Features

    - **Mentions**: reference paper sets inline with `@search:<id>` and `@pdf_batch:<id>`
    - **Canvas**: build an outline from the mentioned papers and expand nodes on demand
    - **Reports**: background generation of every section with live progress (SSE)
    - **Export**: LaTeX + BibTeX, HTML and DOCX with a deduplicated bibliography
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware wraps the app, so the last one added runs first.
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    """CORS and request-id headers for error responses built by the handlers below."""
    origin = request.headers.get("origin") or ""
    origins = settings.cors_origins
    headers = {
        "Access-Control-Allow-Origin": origin if origin in origins else (origins[0] if origins else "*"),
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "*",
        "Access-Control-Allow-Headers": "*",
    }
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


def _json_error(
    request: Request,
    status_code: int,
    detail,
    extra: Optional[dict] = None,
    with_request_id: bool = False,
) -> JSONResponse:
    content = {"detail": detail}
    if extra:
        content.update(extra)
    req_id = getattr(request.state, "request_id", None)
    if with_request_id and req_id:
        content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=_error_headers(request))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _json_error(request, exc.status_code, exc.detail, with_request_id=exc.status_code >= 500)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _json_error(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        extra={"errors": errors},
        with_request_id=True,
    )


@app.exception_handler(ReportNotFoundError)
async def report_not_found_handler(request: Request, exc: ReportNotFoundError):
    return _json_error(request, status.HTTP_404_NOT_FOUND, "Report not found")


@app.exception_handler(CompletionError)
async def completion_error_handler(request: Request, exc: CompletionError):
    """The model provider failed while serving a request."""
    logger.error("Completion failed (%s): %s", exc.provider or "unknown provider", exc)
    return _json_error(request, status.HTTP_502_BAD_GATEWAY, str(exc), with_request_id=True)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.debug:
        return _json_error(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(exc),
            extra={"type": type(exc).__name__},
            with_request_id=True,
        )
    return _json_error(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        with_request_id=True,
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
        ai_configured=settings.ai_configured,
    )


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {"v1": settings.api_v1_prefix},
    }


app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
