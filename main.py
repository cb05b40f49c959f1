from contextlib import asynccontextmanager

from fastapi import FastAPI
from tracking_app.config import get_settings
from tracking_app.dependencies import get_transport
from tracking_app.log import configure_logging
from tracking_app.middleware import AnalyticsMiddleware
from tracking_app.api.v1 import track, tracking_urls

settings = get_settings()

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the measurement transport's connections on shutdown"""
    yield
    transport = app.dependency_overrides.get(get_transport, get_transport)()
    await transport.close()


# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    version=settings.app_version,
    description="Server-side analytics tracking built with FastAPI",
    debug=settings.debug
)

app.add_middleware(AnalyticsMiddleware)


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "analytics_configured": bool(settings.google_analytics_measurement_id),
    }


######## Include routers
app.include_router(tracking_urls.router, prefix="/api/v1")
app.include_router(track.router, prefix=settings.tracking_route_prefix)
app.include_router(track.legacy_router)
