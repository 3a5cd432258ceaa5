"""
Pricing Module - Shared Service
==================================
Market rate source for the pricing engine: stored per-metal rates with
staleness guard. The engine itself never reads the DB; callers resolve the
rate here first and pass it to PricingEngine.compute().
"""

import logging
from decimal import Decimal
from typing import Dict, List

from sqlalchemy.orm import Session

from common.exceptions import InvalidAttribute, NotFoundError, RateUnavailableError
from common.helpers import now_utc, to_decimal
from modules.pricing.models import Asset, ASSET_LABELS

logger = logging.getLogger("jewelcraft.pricing")


# ==========================================
# Asset Rate Helpers
# ==========================================

def _code(metal_type) -> str:
    return getattr(metal_type, "value", metal_type)


def get_asset(db: Session, metal_type) -> Asset:
    """Get Asset object by metal code. Raises NotFoundError if not found."""
    code = _code(metal_type)
    asset = db.query(Asset).filter(Asset.asset_code == code).first()
    if not asset:
        raise NotFoundError(f"no market rate configured for '{code}'")
    return asset


def get_rate(db: Session, metal_type) -> Decimal:
    """
    Current per-gram rate of the pure metal.

    Raises:
        RateUnavailableError: asset missing or rate never set.
    """
    code = _code(metal_type)
    asset = db.query(Asset).filter(Asset.asset_code == code).first()
    if not asset or asset.rate_per_gram is None:
        raise RateUnavailableError(f"market rate for '{code}' is not set")
    return Decimal(asset.rate_per_gram)


def is_rate_fresh(db: Session, metal_type) -> bool:
    """True if asset rate is within its staleness threshold."""
    asset = db.query(Asset).filter(Asset.asset_code == _code(metal_type)).first()
    if not asset:
        return False
    return asset.is_fresh


def require_fresh_rate(db: Session, metal_type) -> Decimal:
    """Return the rate, raising RateUnavailableError if it is stale or missing."""
    code = _code(metal_type)
    asset = db.query(Asset).filter(Asset.asset_code == code).first()
    if not asset or asset.rate_per_gram is None:
        raise RateUnavailableError(f"market rate for '{code}' is not set")
    if not asset.is_fresh:
        mins = int(asset.minutes_since_update)
        raise RateUnavailableError(
            f"{asset.asset_label} rate is stale (last update {mins} minutes ago)"
        )
    return Decimal(asset.rate_per_gram)


def update_asset_rate(db: Session, metal_type, new_rate, updated_by: str, source: str = None) -> Asset:
    """Update rate + set updated_at to now. Caller must commit."""
    d_rate = to_decimal(new_rate)
    if d_rate is None or d_rate < 0:
        raise InvalidAttribute("rate_per_gram", "market rate cannot be negative")
    asset = get_asset(db, metal_type)
    asset.rate_per_gram = d_rate
    asset.updated_at = now_utc()
    asset.updated_by = updated_by
    if source:
        asset.source = source
    logger.info(f"Rate {asset.asset_code} set to {d_rate} by {updated_by}")
    return asset


def ensure_assets(db: Session) -> List[Asset]:
    """Create any missing metal assets with no rate yet. Caller must commit."""
    existing = {a.asset_code for a in db.query(Asset).all()}
    created = []
    for code, label in ASSET_LABELS.items():
        if code in existing:
            continue
        asset = Asset(asset_code=code, asset_label=label, rate_per_gram=None, updated_at=None)
        db.add(asset)
        created.append(asset)
    if created:
        db.flush()
    return created


def list_rates(db: Session) -> List[Dict]:
    """All assets as plain dicts (API / dashboard)."""
    return [
        {
            "metal_type": a.asset_code,
            "label": a.asset_label,
            "rate_per_gram": str(a.rate_per_gram) if a.rate_per_gram is not None else None,
            "is_fresh": a.is_fresh,
            "updated_at": a.updated_at.isoformat() if a.updated_at else None,
            "updated_by": a.updated_by,
            "source": a.source,
        }
        for a in db.query(Asset).order_by(Asset.id).all()
    ]
