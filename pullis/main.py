"""
FastAPI application entry point.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pullis import __version__
from pullis.api import github, repositories, slack
from pullis.config import settings
from pullis.middleware.logging import RequestLoggingMiddleware
from pullis.services.container import ServiceContainer
from pullis.utils.logging import get_logger, setup_logging

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Pullis",
    description="GitHub pull request notifications for Slack channels",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins if settings.environment == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Pullis API",
        "version": __version__,
        "docs": "/docs"
    }


# Include API routers
app.include_router(github.router)
app.include_router(slack.router)
app.include_router(repositories.router)


@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup."""
    logger.info("Starting Pullis API")

    services = ServiceContainer(settings)
    await services.start()
    app.state.services = services

    logger.info(f"Slash commands registered: {', '.join(services.commands.commands)}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup services on application shutdown."""
    logger.info("Shutting down Pullis API")

    services = getattr(app.state, "services", None)
    if services is not None:
        await services.stop()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
