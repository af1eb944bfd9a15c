from fastapi import APIRouter

from api.rss_routes import router as rss_router
from api.scrape_routes import router as scrape_router
from api.stats_routes import router as stats_router

router = APIRouter()

router.include_router(scrape_router, tags=["Scrape"])
router.include_router(stats_router, tags=["Statistics"])
router.include_router(rss_router, tags=["RSS"])
