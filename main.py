"""Main application entry point."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from cryptonique.api.dependencies import create_services
from cryptonique.api.error_handlers import register_error_handlers
from cryptonique.api.routes import router
from cryptonique.utils.config import config
from cryptonique.utils.logger import StructuredLogger
from cryptonique.utils.trace_context import TRACE_HEADER, clear_trace, create_trace

logger = StructuredLogger("App", config.logging.log_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    try:
        config.validate()
    except ValueError as e:
        logger.critical("Configuration error", exception=e)
        raise

    async with httpx.AsyncClient() as client:
        app.state.services = create_services(config, client)
        logger.info(
            "Market service started",
            context={
                "environment": config.api.environment,
                "providers": app.state.services.resolver.provider_names,
            },
        )
        yield
    # Shutdown
    logger.info("Market service stopped")


# Create FastAPI app
app = FastAPI(
    title="Cryptonique",
    description="Cryptocurrency prices with short-horizon price extrapolations",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", TRACE_HEADER],
    expose_headers=[TRACE_HEADER],
)

register_error_handlers(app)


@app.middleware("http")
async def trace_requests(request: Request, call_next):
    """Attach a trace ID to every request and echo it back."""
    trace_id = create_trace(request.headers.get(TRACE_HEADER))
    try:
        response = await call_next(request)
    finally:
        clear_trace()
    response.headers[TRACE_HEADER] = trace_id
    return response


# Include API routes
app.include_router(router, prefix="/api", tags=["markets"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
