"""
Catalog Module - Service Layer
================================
Business logic for Products: CRUD, stone editing, pricing and bulk reprice.
Every write, stone edits included, goes through validate_commit() before it
reaches the session; a rejected write leaves the product as it was.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from common.exceptions import (
    InvalidAttribute, MissingAttribute, PriceInversion, NotFoundError, JewelcraftError,
)
from common.helpers import to_decimal, round_money
from modules.catalog.models import Product
from modules.pricing.calculator import MetalType, purity_fraction, purity_tier
from modules.pricing.engine import PricingMode, PricingEngine, pricing_engine
from modules.pricing import service as rate_service

logger = logging.getLogger("jewelcraft.catalog")

COMMERCIAL_FIELDS = ("mrp", "cost_price", "selling_price")
EDITABLE_FIELDS = (
    "name", "sku", "description", "is_active",
    "pricing_mode", "metal_type", "metal_weight", "metal_purity",
    "making_charge_percent", "tax_percent",
    "cost_price", "selling_price", "mrp",
)


# ==========================================
# Commit rule
# ==========================================

def validate_commit(product: Product):
    """
    Enforce the product save rules, in order:
      1. mrp, cost_price, selling_price present and >= 0
      2. selling_price <= mrp
      3. cost_price <= selling_price
      4. dynamic products need metal_weight > 0

    Never corrects values, only raises.
    """
    values = {}
    for field in COMMERCIAL_FIELDS:
        d = to_decimal(getattr(product, field, None))
        if d is None or d < 0:
            raise InvalidAttribute(field, f"{field} must be a non-negative amount")
        values[field] = d

    if values["selling_price"] > values["mrp"]:
        raise PriceInversion("selling price exceeds MRP")
    if values["cost_price"] > values["selling_price"]:
        raise PriceInversion("cost price exceeds selling price")

    if product.pricing_mode == PricingMode.DYNAMIC.value:
        weight = to_decimal(product.metal_weight)
        if weight is None or weight <= 0:
            raise MissingAttribute("metal_weight")


# ==========================================
# Input normalization
# ==========================================

def enum_value(enum_cls, value, field: str) -> str:
    """Normalize an enum input ("Gold", " gold ", MetalType.GOLD) to its stored value."""
    value = getattr(value, "value", value)
    if isinstance(value, str):
        value = value.strip().lower()
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise InvalidAttribute(field, f"{field} must be one of: {allowed}")


def _clean(field: str, value):
    """Coerce one editable field to its stored type."""
    if field == "pricing_mode":
        return enum_value(PricingMode, value, field)
    if field == "metal_type":
        return enum_value(MetalType, value, field)
    if field == "metal_purity":
        return purity_tier(value)
    if field == "metal_weight":
        if value is None or value == "":
            return None
        d = to_decimal(value)
        if d is None or d < 0:
            raise InvalidAttribute(field, "metal weight cannot be negative")
        return d
    if field in ("making_charge_percent", "tax_percent"):
        d = to_decimal(value)
        if d is None or d < 0 or d > 100:
            raise InvalidAttribute(field, f"{field} must be between 0 and 100")
        return d
    if field in COMMERCIAL_FIELDS:
        d = to_decimal(value)
        if d is None or d < 0:
            raise InvalidAttribute(field, f"{field} must be a non-negative amount")
        return round_money(d)
    if field in ("name", "sku"):
        text = (value or "").strip()
        if not text:
            raise MissingAttribute(field)
        return text
    if field == "is_active":
        return bool(value)
    return value


def _restore(product: Product, snapshot: Dict):
    for field, value in snapshot.items():
        setattr(product, field, value)


# ==========================================
# 📦 Product Service
# ==========================================

class ProductService:

    def __init__(self, engine: Optional[PricingEngine] = None):
        self.engine = engine or pricing_engine

    def list_all(self, db: Session, active_only: bool = False) -> List[Product]:
        q = db.query(Product)
        if active_only:
            q = q.filter(Product.is_active == True)
        return q.order_by(Product.id.desc()).all()

    def get_by_id(self, db: Session, product_id: int) -> Product:
        p = db.query(Product).filter(Product.id == product_id).first()
        if not p:
            raise NotFoundError(f"product {product_id} not found")
        return p

    def _check_sku(self, db: Session, sku: str, exclude_id: int = None):
        q = db.query(Product).filter(Product.sku == sku)
        if exclude_id:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise InvalidAttribute("sku", f"sku '{sku}' already exists")

    def create(self, db: Session, data: Dict) -> Product:
        """
        Create a product from a plain dict. Missing inputs take the
        per-metal defaults from settings. Caller must commit.
        """
        fields = {k: _clean(k, v) for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        for required in ("name", "sku"):
            if required not in fields:
                raise MissingAttribute(required)
        self._check_sku(db, fields["sku"])

        p = Product(**fields, stones=data.get("stones") or [])
        purity_fraction(p.metal_type, p.metal_purity)
        return self.commit(db, p)

    def update(self, db: Session, product_id: int, data: Dict) -> Product:
        """Partial update; unknown keys are ignored. Caller must commit."""
        p = self.get_by_id(db, product_id)
        fields = {k: _clean(k, v) for k, v in data.items() if k in EDITABLE_FIELDS}
        if "sku" in fields:
            self._check_sku(db, fields["sku"], exclude_id=p.id)
        snapshot = {k: getattr(p, k) for k in list(fields) + ["price"]}
        for k, v in fields.items():
            setattr(p, k, v)
        if "selling_price" in fields:
            p.price = p.selling_price
        try:
            purity_fraction(p.metal_type, p.metal_purity)
            return self.commit(db, p)
        except JewelcraftError:
            _restore(p, snapshot)
            raise

    def commit(self, db: Session, product: Product) -> Product:
        """Validate the save rules and flush. Caller must commit (or roll back on error)."""
        validate_commit(product)
        if product.id is None:
            db.add(product)
        db.flush()
        return product

    # ------------------------------------------
    # Stones
    # ------------------------------------------

    def _write_stones(self, db: Session, product: Product, stones) -> Product:
        snapshot = {"stones_data": product.stones_data}
        product.stones = stones
        try:
            return self.commit(db, product)
        except JewelcraftError:
            _restore(product, snapshot)
            raise

    def add_stone(self, db: Session, product_id: int, data: Dict) -> Product:
        p = self.get_by_id(db, product_id)
        stones = p.stones
        stones.add(**data)
        return self._write_stones(db, p, stones)

    def update_stone(self, db: Session, product_id: int, index: int, field: str, value) -> Product:
        p = self.get_by_id(db, product_id)
        stones = p.stones
        stones.update(index, field, value)
        return self._write_stones(db, p, stones)

    def remove_stone(self, db: Session, product_id: int, index: int) -> Product:
        p = self.get_by_id(db, product_id)
        stones = p.stones
        stones.remove(index)
        return self._write_stones(db, p, stones)

    # ------------------------------------------
    # Pricing
    # ------------------------------------------

    def _rate_for(self, db: Session, product: Product) -> Optional[Decimal]:
        if not product.is_dynamic:
            return None
        return rate_service.get_rate(db, product.metal_type)

    def price(self, db: Session, product: Product, auto_apply: bool = False) -> Dict:
        """
        Compute the breakdown at the stored market rate.
        With auto_apply the derived prices are written and committed through
        validate_commit. Caller must commit.

        Raises:
            RateUnavailableError: dynamic product and no rate for its metal.
            ValidationError: bad attributes or a failed commit rule.
        """
        breakdown = self.engine.compute(product, self._rate_for(db, product))
        commercial = self.engine.derive_commercial_prices(breakdown) if product.is_dynamic else None

        if auto_apply:
            snapshot = {f: getattr(product, f) for f in COMMERCIAL_FIELDS + ("price", "last_price_update")}
            self.engine.apply(product, breakdown)
            try:
                self.commit(db, product)
            except JewelcraftError:
                _restore(product, snapshot)
                raise
            logger.info(f"Priced {product.sku}: selling={product.selling_price} mrp={product.mrp}")

        return {
            "breakdown": breakdown,
            "commercial": commercial,
            "applied": auto_apply,
        }

    def reprice_dynamic(self, db: Session, product_ids: Optional[List[int]] = None) -> Dict:
        """
        Recompute and apply prices of all active dynamic products (or just
        product_ids) at current rates. Failures are collected per product.
        Caller must commit.

        Returns:
            {"updated": int, "errors": int, "results": [...], "error_details": [...]}
        """
        q = db.query(Product).filter(
            Product.pricing_mode == PricingMode.DYNAMIC.value,
            Product.is_active == True,
        )
        if product_ids:
            q = q.filter(Product.id.in_(product_ids))

        results, error_details = [], []
        rates: Dict[str, Decimal] = {}

        for p in q.order_by(Product.id).all():
            old_selling, old_mrp = p.selling_price, p.mrp
            try:
                if p.metal_type not in rates:
                    rates[p.metal_type] = rate_service.get_rate(db, p.metal_type)
                breakdown = self.engine.compute(p, rates[p.metal_type])
                snapshot = {f: getattr(p, f) for f in COMMERCIAL_FIELDS + ("price", "last_price_update")}
                self.engine.apply(p, breakdown)
                try:
                    validate_commit(p)
                except JewelcraftError:
                    _restore(p, snapshot)
                    raise
            except JewelcraftError as e:
                logger.warning(f"Reprice failed for {p.sku}: {e.message}")
                error_details.append({"id": p.id, "sku": p.sku, "error": e.message})
                continue

            results.append({
                "id": p.id,
                "sku": p.sku,
                "old_selling_price": str(old_selling),
                "new_selling_price": str(p.selling_price),
                "old_mrp": str(old_mrp),
                "new_mrp": str(p.mrp),
            })

        if results:
            db.flush()
        logger.info(f"Reprice finished: {len(results)} updated, {len(error_details)} failed")
        return {
            "updated": len(results),
            "errors": len(error_details),
            "results": results,
            "error_details": error_details,
        }


# Singleton
product_service = ProductService()
