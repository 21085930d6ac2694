import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tripsynth.routers import trip
from tripsynth.config import settings, cloud_config

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Hong Kong Itinerary Synthesis API",
    version="0.1.0",
    description="Single-day itinerary planning from free-text requests with local-model generation and rule-based fallback"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins if not cloud_config.IS_CLOUD_RUN else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(trip.router, prefix="/api/v1")

@app.get("/health")
def health_check():
    """Health check endpoint for Cloud Run and monitoring"""
    return {
        "status": "ok",
        "message": "Itinerary Synthesis API is running",
        "environment": "cloud-run" if cloud_config.IS_CLOUD_RUN else "local",
        "generator_backend": settings.generator_backend
    }

@app.get("/")
def root():
    """Root endpoint with API information"""
    return {
        "name": "Hong Kong Itinerary Synthesis API",
        "version": "0.1.0",
        "docs_url": "/docs",
        "health_url": "/health"
    }

# For Cloud Run, the port is set via environment variable
if __name__ == "__main__":
    import uvicorn
    port = cloud_config.PORT if cloud_config.IS_CLOUD_RUN else settings.port
    uvicorn.run(app, host="0.0.0.0", port=port)
