import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from tripsmith.api.v1.router import api_router
from tripsmith.core.config import settings
from tripsmith.core.context import bind_request, resolve_trace_id
from tripsmith.core.logging import configure_logging
from tripsmith.domain.route_synthesis.service import build_route_synthesizer
from tripsmith.models.schemas import HealthResponse

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting %s...", settings.PROJECT_NAME)
    logger.info("Environment: %s", settings.ENVIRONMENT)
    logger.info("LLM Provider: %s", settings.LLM_PROVIDER)
    logger.info("LLM Models: %s", ", ".join(settings.llm_model_chain))

    if not settings.ANTHROPIC_API_KEY and not settings.OPENAI_API_KEY:
        logger.warning("No LLM API key configured! Route generation will fail.")
    if not settings.TWOGIS_API_KEY:
        logger.warning("2GIS API key not configured, geocoding falls back to Nominatim")
    if not settings.OPENROUTESERVICE_API_KEY:
        logger.warning(
            "OpenRouteService API key not configured, routes use geometric paths. "
            "Get a free key at https://openrouteservice.org/dev/#/signup"
        )

    if getattr(app.state, "route_synthesizer", None) is None:
        app.state.route_synthesizer = build_route_synthesizer(settings)

    logger.info("%s ready!", settings.PROJECT_NAME)

    yield

    geocoding = getattr(app.state.route_synthesizer, "geocoding", None)
    close = getattr(getattr(geocoding, "cache", None), "close", None)
    if close is not None:
        await close()
    logger.info("Shutting down %s...", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)


@app.middleware("http")
async def trace_and_log_requests(request: Request, call_next):
    """Bind a trace id to the request and log it with timing"""
    trace_id = resolve_trace_id(request.headers)
    with bind_request(trace_id):
        start_time = time.perf_counter()
        logger.info("➡️  %s %s", request.method, request.url.path)
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        logger.info(
            "⬅️  %s %s - Status: %s - Time: %.2fs",
            request.method,
            request.url.path,
            response.status_code,
            process_time,
        )
        response.headers["X-Trace-Id"] = trace_id
        return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint"""
    return HealthResponse(status="healthy", service=settings.PROJECT_NAME, version=settings.VERSION)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tripsmith.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
    )
