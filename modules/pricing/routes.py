"""
Pricing Module - API Routes
=============================
Market rates and stateless price preview.

Endpoints:
  GET  /api/rates                - Current per-gram rates with freshness
  PUT  /api/admin/rates/{metal}  - Manual rate entry
  POST /api/pricing/calculate    - Breakdown for ad-hoc attributes (nothing stored)
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import JewelcraftError, raise_http
from modules.catalog.admin_routes import StoneRequest
from modules.catalog.models import Product
from modules.catalog.service import enum_value
from modules.pricing import service as rate_service
from modules.pricing.calculator import MetalType
from modules.pricing.engine import PricingMode, pricing_engine

router = APIRouter(tags=["pricing"])


# ==========================================
# Schemas
# ==========================================

class RateUpdateRequest(BaseModel):
    rate_per_gram: Decimal = Field(..., ge=0)
    source: Optional[str] = "manual"
    updated_by: str = "admin"


class CalculateRequest(BaseModel):
    pricing_mode: str = PricingMode.DYNAMIC.value
    metal_type: str = "gold"
    metal_weight: Optional[Decimal] = None
    metal_purity: Optional[int] = None
    making_charge_percent: Optional[Decimal] = None
    tax_percent: Optional[Decimal] = None
    selling_price: Decimal = Decimal("0")
    stones: List[StoneRequest] = []
    # Explicit rate; the stored rate is used when omitted
    rate_per_gram: Optional[Decimal] = None


# ==========================================
# Rates
# ==========================================

@router.get("/api/rates")
async def list_rates(db: Session = Depends(get_db)):
    return {"success": True, "rates": rate_service.list_rates(db)}


@router.put("/api/admin/rates/{metal}")
async def update_rate(metal: str, body: RateUpdateRequest, db: Session = Depends(get_db)):
    try:
        asset = rate_service.update_asset_rate(
            db, metal, body.rate_per_gram, updated_by=body.updated_by, source=body.source,
        )
    except JewelcraftError as e:
        db.rollback()
        raise_http(e)
    db.commit()
    return {
        "success": True,
        "metal_type": asset.asset_code,
        "rate_per_gram": str(asset.rate_per_gram),
    }


# ==========================================
# Calculator
# ==========================================

@router.post("/api/pricing/calculate")
async def calculate(body: CalculateRequest, db: Session = Depends(get_db)):
    """Price a transient product; the DB is only read for the market rate."""
    fields = body.model_dump(exclude={"stones", "rate_per_gram"}, exclude_none=True)
    try:
        fields["metal_type"] = enum_value(MetalType, fields["metal_type"], "metal_type")
        fields["pricing_mode"] = enum_value(PricingMode, fields["pricing_mode"], "pricing_mode")
        product = Product(**fields, stones=[s.model_dump(mode="json") for s in body.stones])
        rate = body.rate_per_gram
        if rate is None and product.is_dynamic:
            rate = rate_service.get_rate(db, product.metal_type)
        breakdown = pricing_engine.compute(product, rate)
    except JewelcraftError as e:
        raise_http(e)

    commercial = pricing_engine.derive_commercial_prices(breakdown) if product.is_dynamic else None
    return {
        "success": True,
        "breakdown": breakdown.to_dict(),
        "commercial": commercial.to_dict() if commercial else None,
    }
