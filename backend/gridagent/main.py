"""FastAPI application entry point."""
import logging
import logging.handlers
import time

import httpx
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gridagent.core.config import ModelConfig, settings
from gridagent.services.ai.client import ModelClient
from gridagent.services.bootstrap import PrimaryColumnBootstrap
from gridagent.services.grid.orchestrator import GridOrchestrator
from gridagent.services.grid.store import StaleGridError
from gridagent.services.grid.store_factory import create_grid_store
from gridagent.services.hydration import HydrationEngine
from gridagent.services.tools import build_default_registry
from gridagent.services.tools.github_client import GitHubClient

LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5  # Keep 5 backup files


def configure_logging() -> None:
    """Rotating file log plus console output on the root logger."""
    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "app.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.LOG_LEVEL.upper())
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Per-turn detail is only useful when chasing a specific cell
    logging.getLogger("gridagent.services.hydration").setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured. Log file: {log_file}")


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Grids whose rows come from a tool call and whose cells are filled in by an LLM with tool access",
    version="1.0.0",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
)


@app.on_event("startup")
async def startup_event():
    """Build the model client, tools, engine and orchestrator."""
    model_client = ModelClient(ModelConfig.from_settings())
    github = GitHubClient()
    http = httpx.AsyncClient(timeout=30)
    tool_registry = build_default_registry(github, model_client, http)
    engine = HydrationEngine(model_client, tool_registry)
    bootstrap = PrimaryColumnBootstrap(model_client, tool_registry)

    app.state.model_client = model_client
    app.state.github = github
    app.state.http = http
    app.state.tool_registry = tool_registry
    app.state.orchestrator = GridOrchestrator(create_grid_store(), engine, bootstrap)
    logger.info(f"Started with {len(tool_registry)} tools: {', '.join(tool_registry.names)}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cancel in-flight hydrations and close HTTP clients."""
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        await orchestrator.shutdown()
    for name in ("github", "model_client"):
        client = getattr(app.state, name, None)
        if client is not None:
            await client.close()
    http = getattr(app.state, "http", None)
    if http is not None:
        await http.aclose()


# Configure CORS - must be added before other middleware
cors_origins = settings.cors_origins_list
logger.info(f"CORS origins configured: {cors_origins}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)


# Global exception handler to ensure CORS headers on errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler that ensures CORS headers are set."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error": str(exc)},
        headers={
            "Access-Control-Allow-Origin": request.headers.get("origin", "*"),
            "Access-Control-Allow-Credentials": "true",
        }
    )


@app.exception_handler(StaleGridError)
async def stale_grid_handler(request: Request, exc: StaleGridError):
    """A concurrent writer saved the grid first; the client may retry."""
    logger.warning(str(exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Grid was modified concurrently, retry the request", "error": str(exc)},
    )


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests."""
    start_time = time.time()
    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"Response: {request.method} {request.url.path} - "
        f"Status: {response.status_code} - Time: {process_time:.3f}s"
    )

    return response


api_router = APIRouter(prefix="/api/v1", tags=["api"])


@api_router.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": settings.APP_NAME, "version": "1.0.0", "docs": "/api/v1/docs"}


app.include_router(api_router)

from gridagent.api.grids import router as grids_router  # noqa: E402
app.include_router(grids_router, prefix="/api/v1")

from gridagent.api.tools import router as tools_router  # noqa: E402
app.include_router(tools_router, prefix="/api/v1")
