"""
Catalog Module - Admin API Routes
===================================
JSON CRUD for Products, stone editing and pricing.

Endpoints:
  GET    /api/admin/products                     - Product list
  POST   /api/admin/products                     - Create product
  POST   /api/admin/products/reprice             - Bulk reprice dynamic products
  GET    /api/admin/products/{id}                - Product detail + stones
  PUT    /api/admin/products/{id}                - Partial update
  POST   /api/admin/products/{id}/stones         - Add stone
  PATCH  /api/admin/products/{id}/stones/{index} - Edit one stone field
  DELETE /api/admin/products/{id}/stones/{index} - Remove stone
  POST   /api/admin/products/{id}/price          - Compute (and optionally apply) price
"""

from decimal import Decimal
from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import JewelcraftError, raise_http
from modules.catalog.models import Product
from modules.catalog.service import product_service
from modules.pricing.stones import StoneType

router = APIRouter(prefix="/api/admin/products", tags=["catalog-admin"])


# ==========================================
# Schemas
# ==========================================

class StoneRequest(BaseModel):
    stone_type: StoneType = StoneType.DIAMOND
    quality: str = "VS1"
    weight: Decimal = Field(Decimal("0"), ge=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    color: str = "Colorless"
    cut: str = "Round"
    setting: str = "Prong"


class StoneFieldRequest(BaseModel):
    field: str = Field(..., min_length=1)
    value: Any = None


class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1, max_length=40)
    description: Optional[str] = None
    is_active: bool = True
    pricing_mode: str = "fixed"
    metal_type: str = "gold"
    metal_weight: Optional[Decimal] = None
    metal_purity: Optional[int] = None
    making_charge_percent: Optional[Decimal] = None
    tax_percent: Optional[Decimal] = None
    cost_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    mrp: Decimal = Decimal("0")
    stones: List[StoneRequest] = []


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    pricing_mode: Optional[str] = None
    metal_type: Optional[str] = None
    metal_weight: Optional[Decimal] = None
    metal_purity: Optional[int] = None
    making_charge_percent: Optional[Decimal] = None
    tax_percent: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    mrp: Optional[Decimal] = None


class RepriceRequest(BaseModel):
    product_ids: Optional[List[int]] = None


# ==========================================
# Serializers
# ==========================================

def _money(value) -> Optional[str]:
    return None if value is None else str(value)


def product_dict(p: Product) -> dict:
    stones = p.stones
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "description": p.description,
        "is_active": p.is_active,
        "pricing_mode": p.pricing_mode,
        "metal_type": p.metal_type,
        "metal_weight": _money(p.metal_weight),
        "metal_purity": p.metal_purity,
        "making_charge_percent": _money(p.making_charge_percent),
        "tax_percent": _money(p.tax_percent),
        "cost_price": _money(p.cost_price),
        "selling_price": _money(p.selling_price),
        "mrp": _money(p.mrp),
        "price": _money(p.price),
        "stones": stones.to_records(),
        "stone_value": str(stones.aggregate_value()),
        "last_price_update": p.last_price_update.isoformat() if p.last_price_update else None,
    }


def _stones_payload(p: Product) -> dict:
    stones = p.stones
    return {
        "success": True,
        "product_id": p.id,
        "stones": stones.to_records(),
        "stone_value": str(stones.aggregate_value()),
    }


def _fail(db: Session, error: JewelcraftError):
    db.rollback()
    raise_http(error)


# ==========================================
# 📦 Products
# ==========================================

@router.get("")
async def list_products(active_only: bool = False, db: Session = Depends(get_db)):
    products = product_service.list_all(db, active_only=active_only)
    return {"success": True, "total": len(products), "products": [product_dict(p) for p in products]}


@router.post("", status_code=201)
async def create_product(body: ProductCreateRequest, db: Session = Depends(get_db)):
    data = body.model_dump()
    data["stones"] = [s.model_dump(mode="json") for s in body.stones]
    try:
        p = product_service.create(db, data)
    except JewelcraftError as e:
        _fail(db, e)
    db.commit()
    return {"success": True, "product": product_dict(p)}


@router.post("/reprice")
async def reprice_products(body: Optional[RepriceRequest] = None, db: Session = Depends(get_db)):
    """Re-derive prices of dynamic products at current market rates."""
    ids = body.product_ids if body else None
    summary = product_service.reprice_dynamic(db, product_ids=ids)
    db.commit()
    return {"success": True, **summary}


@router.get("/{product_id}")
async def get_product(product_id: int, db: Session = Depends(get_db)):
    try:
        p = product_service.get_by_id(db, product_id)
    except JewelcraftError as e:
        _fail(db, e)
    return {"success": True, "product": product_dict(p)}


@router.put("/{product_id}")
async def update_product(product_id: int, body: ProductUpdateRequest, db: Session = Depends(get_db)):
    try:
        p = product_service.update(db, product_id, body.model_dump(exclude_unset=True))
    except JewelcraftError as e:
        _fail(db, e)
    db.commit()
    return {"success": True, "product": product_dict(p)}


# ==========================================
# 💎 Stones
# ==========================================

@router.post("/{product_id}/stones", status_code=201)
async def add_stone(product_id: int, body: StoneRequest, db: Session = Depends(get_db)):
    try:
        p = product_service.add_stone(db, product_id, body.model_dump())
    except JewelcraftError as e:
        _fail(db, e)
    db.commit()
    return _stones_payload(p)


@router.patch("/{product_id}/stones/{index}")
async def update_stone(product_id: int, index: int, body: StoneFieldRequest, db: Session = Depends(get_db)):
    try:
        p = product_service.update_stone(db, product_id, index, body.field, body.value)
    except JewelcraftError as e:
        _fail(db, e)
    db.commit()
    return _stones_payload(p)


@router.delete("/{product_id}/stones/{index}")
async def remove_stone(product_id: int, index: int, db: Session = Depends(get_db)):
    try:
        p = product_service.remove_stone(db, product_id, index)
    except JewelcraftError as e:
        _fail(db, e)
    db.commit()
    return _stones_payload(p)


# ==========================================
# 💰 Pricing
# ==========================================

@router.post("/{product_id}/price")
async def price_product(product_id: int, auto_apply: bool = False, db: Session = Depends(get_db)):
    """Breakdown at the stored market rate; auto_apply writes selling/MRP/cost."""
    try:
        p = product_service.get_by_id(db, product_id)
        result = product_service.price(db, p, auto_apply=auto_apply)
    except JewelcraftError as e:
        _fail(db, e)
    if auto_apply:
        db.commit()
    commercial = result["commercial"]
    return {
        "success": True,
        "applied": result["applied"],
        "breakdown": result["breakdown"].to_dict(),
        "commercial": commercial.to_dict() if commercial else None,
        "product": product_dict(p),
    }
