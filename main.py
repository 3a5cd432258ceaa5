"""
Jewelcraft - Application Entry Point
======================================
FastAPI app initialization, background rate refresh and router registration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from apscheduler.schedulers.background import BackgroundScheduler

from config import settings
from config.database import SessionLocal, Base, engine
from common.exceptions import JewelcraftError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
scheduler_logger = logging.getLogger("jewelcraft.scheduler")

# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.pricing.models import Asset  # noqa: F401
from modules.catalog.models import Product  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.pricing.routes import router as pricing_router
from modules.catalog.admin_routes import router as catalog_admin_router


# ==========================================
# Background Scheduler: Market Rate Refresh
# ==========================================
def _auto_update_rates():
    """Background job: refresh auto-update assets (per-asset interval), then reprice dynamic products."""
    db = SessionLocal()
    try:
        from common.helpers import now_utc
        from modules.pricing.models import Asset as AssetModel
        from modules.pricing.feed_service import fetch_spot_rates
        from modules.pricing.service import update_asset_rate
        from modules.catalog.service import product_service

        due = []
        for asset in db.query(AssetModel).filter(AssetModel.auto_update == True).all():
            if asset.rate_per_gram is not None and asset.minutes_since_update < asset.update_interval_minutes:
                continue  # not time yet for this asset
            due.append(asset.asset_code)
        if not due:
            return

        rates = fetch_spot_rates()
        updated = 0
        for code in due:
            if code not in rates:
                scheduler_logger.warning(f"No spot rate returned for {code}")
                continue
            update_asset_rate(db, code, rates[code], updated_by="system:feed", source="metals-api")
            updated += 1

        if updated:
            summary = product_service.reprice_dynamic(db)
            scheduler_logger.info(
                f"Rates refreshed ({updated}), repriced {summary['updated']} products at {now_utc():%H:%M}"
            )
        db.commit()
    except Exception as e:
        db.rollback()
        scheduler_logger.error(f"Rate update error: {e}")
    finally:
        db.close()


scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        from modules.pricing.service import ensure_assets
        if ensure_assets(db):
            db.commit()
    finally:
        db.close()

    if settings.RATE_AUTO_UPDATE:
        scheduler.add_job(_auto_update_rates, 'interval', seconds=60, id='rate_update')
        scheduler.start()
        scheduler_logger.info("Background scheduler started (rates: 60s)")
    yield
    if scheduler.running:
        scheduler.shutdown()
        scheduler_logger.info("Background scheduler stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Jewelcraft",
    description="Dynamic jewelry pricing and stone valuation",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Exception handler: business errors → JSON
# ==========================================
@app.exception_handler(JewelcraftError)
async def business_exception_handler(request: Request, exc: JewelcraftError):
    return JSONResponse(
        {"success": False, "error": exc.message, "code": exc.status_code},
        status_code=exc.status_code,
    )


# ==========================================
# Register Routers
# ==========================================
app.include_router(pricing_router)
app.include_router(catalog_admin_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
