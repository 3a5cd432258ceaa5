"""
Catalog Module - Models
========================
Product: jewelry item with pricing mode, metal attributes, mounted stones
and commercial fields (cost / selling / MRP).
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, JSON, Text
from sqlalchemy.sql import func

from config import settings
from config.database import Base
from common.helpers import format_weight
from modules.pricing.calculator import DEFAULT_PURITY, MetalType
from modules.pricing.engine import PricingMode
from modules.pricing.stones import StoneCollection


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    sku = Column(String(40), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    # Pricing inputs (metal fields only matter in dynamic mode)
    pricing_mode = Column(String(10), default=PricingMode.FIXED.value, nullable=False)
    metal_type = Column(String(20), default=MetalType.GOLD.value, nullable=False)
    metal_weight = Column(Numeric(10, 3), nullable=True)                    # grams
    metal_purity = Column(Integer, default=22, nullable=False)              # karat / fineness
    making_charge_percent = Column(Numeric(5, 2), nullable=False)
    tax_percent = Column(Numeric(5, 2), nullable=False)
    stones_data = Column("stones", JSON, nullable=False, default=list)

    # Commercial fields
    cost_price = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    selling_price = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    mrp = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    price = Column(Numeric(14, 2), default=Decimal("0"), nullable=False)   # display alias of selling_price

    last_price_update = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __init__(self, **kwargs):
        # Column defaults only apply on flush; the engine may price unsaved products
        stones = kwargs.pop("stones", None)
        metal = getattr(kwargs.get("metal_type"), "value", kwargs.get("metal_type")) or MetalType.GOLD.value
        kwargs["metal_type"] = metal
        kwargs["pricing_mode"] = getattr(kwargs.get("pricing_mode"), "value", kwargs.get("pricing_mode")) or PricingMode.FIXED.value
        kwargs.setdefault("metal_purity", DEFAULT_PURITY.get(metal, 22))
        kwargs.setdefault("making_charge_percent", settings.DEFAULT_MAKING_CHARGE_PERCENT.get(metal, Decimal("15")))
        kwargs.setdefault("tax_percent", settings.DEFAULT_TAX_PERCENT)
        kwargs.setdefault("is_active", True)
        for field in ("cost_price", "selling_price", "mrp"):
            kwargs.setdefault(field, Decimal("0"))
        kwargs.setdefault("price", kwargs["selling_price"])
        kwargs.setdefault("stones_data", [])
        super().__init__(**kwargs)
        if stones is not None:
            self.stones = stones

    @property
    def is_dynamic(self) -> bool:
        return self.pricing_mode == PricingMode.DYNAMIC.value

    @property
    def stones(self) -> StoneCollection:
        """
        Mounted stones. Mutations must be written back with
        `product.stones = collection` to be persisted.
        """
        data = self.stones_data
        cached = self.__dict__.get("_stones_cache")
        if cached is None or cached[0] is not data:
            cached = (data, StoneCollection.from_records(data))
            self.__dict__["_stones_cache"] = cached
        return cached[1]

    @stones.setter
    def stones(self, collection):
        if not isinstance(collection, StoneCollection):
            collection = StoneCollection.from_records(collection)
        records = collection.to_records()
        self.stones_data = records
        self.__dict__["_stones_cache"] = (records, collection)

    def __repr__(self):
        weight = f"{format_weight(self.metal_weight)}g " if self.metal_weight else ""
        return f"<Product {self.sku} {weight}({self.pricing_mode})>"
