import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from tipjar_api.middleware.logging_middleware import RequestLoggingMiddleware
from tipjar_api.routers import router as api_router
from tipjar_api.service_container import Services
from tipjar_api.utils.fastapi_utils import install_exception_handlers
from tipjar_common.core.config_service import settings
from tipjar_common.core.request_context import RequestContext
from tipjar_common.logging import setup_logging
from tipjar_common.utils.utils import get_logger
from tipjar_db.db.init_db import init_db

# Load environment variables BEFORE setting up logging
env = os.getenv("APP_ENV", "local")
base_dir = Path(__file__).resolve().parent.parent.parent / "libs" / "common"
env_file = base_dir / (".env.local" if env == "local" else f".env.{env}")
if env_file.exists():
    _ = load_dotenv(env_file)

# Initialize logging AFTER loading environment variables
setup_logging()

logger = get_logger()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, Any]:
    logger.info("Starting application database setup")

    # Initialize database (create tables, run migrations)
    success = await init_db()
    if success:
        logger.info("Database setup completed successfully", service="database", status="initialized")
    else:
        logger.error("Database setup failed", service="database", status="failed")
        raise RuntimeError("Failed to initialize database")

    services = Services.instance()
    await services.start()

    yield

    logger.info("Application shutting down")
    await services.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Creator donation platform: profiles, donations, payment processing and payouts",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# 1. Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# 2. CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Custom middleware to set up RequestContext for all requests
class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        with RequestContext.context() as request_context:
            request_context.endpoint = str(request.url.path)
            return await call_next(request)


app.add_middleware(RequestContextMiddleware)

install_exception_handlers(app)

app.include_router(api_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
