"""
Strangers relay - Main FastAPI application.

Anonymous 1:1 chat matchmaking over WebSockets; all state lives in memory.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

from strangers.core.config import settings
from strangers.core.api import health
from strangers.core.broker import Broker
from strangers.core.websocket.routes import websocket_endpoint

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Lifespan event handlers
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the broker on startup; close every connection on shutdown."""
    app.state.broker = Broker.from_settings(settings)
    logger.info(
        "Strangers relay binding on %s:%s (from config/.env: API_HOST, PORT)",
        settings.api_host,
        settings.api_port,
    )

    yield

    broker = app.state.broker
    for conn_id in list(broker.registry.ids()):
        await broker.registry.close(conn_id)
    logger.info("Strangers relay shutting down")


# Create FastAPI app
app = FastAPI(
    title="Strangers Relay",
    description="Anonymous 1:1 chat matchmaking relay",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests. Status/health endpoints at DEBUG to reduce log spam."""
    path = request.url.path
    skip_info = path in ("/health", "/api/status")
    level = logger.debug if skip_info else logger.info
    level("%s %s", request.method, path)
    response = await call_next(request)
    level("%s %s - %s", request.method, path, response.status_code)
    return response


# Error handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors(), "body": exc.body},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.debug else None,
        },
    )


# WebSocket for pairing and chat; "/" is what existing clients dial
app.add_api_websocket_route("/", websocket_endpoint)
app.add_api_websocket_route("/ws", websocket_endpoint)

# Include routers
app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "strangers.core.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
