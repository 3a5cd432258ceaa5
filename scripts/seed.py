"""
Jewelcraft - Database Seeder
==============================
Seeds market rates and a small sample catalog for local testing.

Usage:
    python scripts/seed.py          # Seed (idempotent)
    python scripts/seed.py --reset  # Drop all data and reseed

Seeded:
  1. Rate assets (gold, silver, platinum) with sample per-gram rates
  2. Products: dynamic gold/silver/platinum pieces with stones, plus one fixed item
"""

import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from modules.pricing.models import GOLD, SILVER, PLATINUM
from modules.pricing.service import ensure_assets, update_asset_rate
from modules.catalog.models import Product
from modules.catalog.service import product_service
from common.helpers import format_money

SAMPLE_RATES = {
    GOLD: Decimal("6542.50"),
    SILVER: Decimal("78.40"),
    PLATINUM: Decimal("2910.00"),
}

SAMPLE_PRODUCTS = [
    {
        "name": "Solitaire Ring 22K",
        "sku": "RNG-22K-001",
        "pricing_mode": "dynamic",
        "metal_type": GOLD,
        "metal_weight": "5.5",
        "metal_purity": 22,
        "stones": [
            {"stone_type": "Diamond", "quality": "VS1", "weight": "0.5", "unit_price": "50000"},
            {"stone_type": "Ruby", "quality": "AAA", "weight": "1", "unit_price": "20000", "cut": "Oval"},
        ],
    },
    {
        "name": "Tennis Bracelet 18K",
        "sku": "BRC-18K-002",
        "pricing_mode": "dynamic",
        "metal_type": GOLD,
        "metal_weight": "12.8",
        "metal_purity": 18,
        "stones": [
            {"stone_type": "Diamond", "quality": "VVS2", "weight": "2.4", "unit_price": "62000",
             "setting": "Channel"},
        ],
    },
    {
        "name": "Sterling Anklet",
        "sku": "ANK-925-003",
        "pricing_mode": "dynamic",
        "metal_type": SILVER,
        "metal_weight": "18",
        "metal_purity": 925,
    },
    {
        "name": "Platinum Band",
        "sku": "BND-PT-004",
        "pricing_mode": "dynamic",
        "metal_type": PLATINUM,
        "metal_weight": "7.2",
        "metal_purity": 950,
    },
    {
        "name": "Pearl Strand (fixed)",
        "sku": "PRL-FX-005",
        "pricing_mode": "fixed",
        "cost_price": "21000",
        "selling_price": "29500",
        "mrp": "32000",
        "stones": [
            {"stone_type": "Pearl", "quality": "AA", "weight": "40", "unit_price": "450"},
        ],
    },
]


def seed():
    db = SessionLocal()
    try:
        print("=" * 50)
        print("  Jewelcraft - Seeder")
        print("=" * 50)

        Base.metadata.create_all(bind=engine)

        # --- Rates ---
        print("\n[1/2] Market Rates")
        for asset in ensure_assets(db):
            print(f"  + Asset: {asset.asset_code}")
        for code, rate in SAMPLE_RATES.items():
            update_asset_rate(db, code, rate, updated_by="seed", source="sample")
            print(f"  ~ {code} = {rate:,}/g")
        db.flush()

        # --- Products ---
        print("\n[2/2] Products")
        for data in SAMPLE_PRODUCTS:
            if db.query(Product).filter(Product.sku == data["sku"]).first():
                print(f"  = exists: {data['sku']}")
                continue
            p = product_service.create(db, data)
            if p.is_dynamic:
                product_service.price(db, p, auto_apply=True)
            print(f"  + {p.sku}: {p.name} → {format_money(p.selling_price)}")

        db.commit()
        print("\nSeed complete.")

    except Exception as e:
        db.rollback()
        print(f"\nSeed failed: {e}")
        raise
    finally:
        db.close()


def reset_and_seed():
    """Drop all tables and recreate + seed."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("All tables recreated")
    seed()


if __name__ == "__main__":
    if "--reset" in sys.argv:
        confirm = input("This will DELETE ALL DATA. Type 'yes' to confirm: ")
        if confirm.strip().lower() == "yes":
            reset_and_seed()
        else:
            print("Aborted.")
    else:
        seed()
