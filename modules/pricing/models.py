"""
Pricing Module - Models
========================
Asset: Per-metal market rate (pure metal, per gram) with staleness guard and auto-update support.
"""

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime

from config import settings
from config.database import Base
from modules.pricing.calculator import MetalType

# Asset code constants (one asset per metal)
GOLD = MetalType.GOLD.value
SILVER = MetalType.SILVER.value
PLATINUM = MetalType.PLATINUM.value

ASSET_LABELS = {
    GOLD: "Gold (24K, per gram)",
    SILVER: "Silver (999, per gram)",
    PLATINUM: "Platinum (999, per gram)",
}


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True)
    asset_code = Column(String(30), unique=True, nullable=False)
    asset_label = Column(String(100), nullable=False)
    rate_per_gram = Column(Numeric(14, 4), nullable=True)           # None until the first quote
    stale_after_minutes = Column(Integer, nullable=False, default=settings.RATE_STALE_AFTER_MINUTES)
    auto_update = Column(Boolean, default=True)
    update_interval_minutes = Column(Integer, nullable=False, default=settings.RATE_UPDATE_INTERVAL_MINUTES)
    source = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(String, nullable=True)

    @property
    def is_fresh(self) -> bool:
        """Check if a rate is set and within its staleness threshold."""
        return self.rate_per_gram is not None and self.minutes_since_update <= self.stale_after_minutes

    @property
    def minutes_since_update(self) -> float:
        """Minutes since last rate update."""
        if not self.updated_at:
            return float("inf")
        from common.helpers import now_utc
        updated_at = self.updated_at
        # SQLite drops tzinfo on read
        if updated_at.tzinfo is None:
            from datetime import timezone
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return (now_utc() - updated_at).total_seconds() / 60

    def __repr__(self):
        return f"<Asset {self.asset_code}={self.rate_per_gram}>"
