from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from api.routes import router as api_router
from config.settings import settings

app = FastAPI(
    title="Job Archive Pipeline API",
    description="Crawl triggers, RSS monitor and job statistics archive",
    version="1.0.0",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_router, prefix="/api", tags=["API"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "archive_configured": settings.archive_configured(),
        "telegram_configured": settings.telegram_configured(),
    }


# Lambda handler
handler = Mangum(app, lifespan="off")
