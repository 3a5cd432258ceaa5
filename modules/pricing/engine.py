"""
Pricing Module - Engine
=========================
Turns a product's physical attributes + a quoted market rate into a
PriceBreakdown, and derives selling price / MRP / cost price from it.

The engine is stateless apart from its (immutable) PricingPolicy and never
performs I/O: the caller fetches the market rate first (pricing.service.get_rate).

Usage:
    engine = PricingEngine()
    breakdown = engine.compute(product, rate_per_gram)
    if auto_apply:
        engine.apply(product, breakdown)
"""

import enum
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional

from config import settings
from common.exceptions import InvalidAttribute
from common.helpers import now_utc, round_money, to_decimal
from modules.pricing.calculator import apply_charges, compute_base_value, purity_fraction, purity_tier

ZERO = Decimal("0.00")

# Default multipliers on the final price (placeholder business margins)
MRP_MARGIN = settings.MRP_MARGIN
ASSUMED_COST_MARGIN = settings.ASSUMED_COST_MARGIN


class PricingMode(str, enum.Enum):
    FIXED = "fixed"        # operator-entered prices are authoritative
    DYNAMIC = "dynamic"    # prices derived from metal rate + stones


@dataclass(frozen=True)
class PricingPolicy:
    """Margins used to derive MRP and cost price from the computed final price."""
    mrp_margin: Decimal = MRP_MARGIN
    cost_margin: Decimal = ASSUMED_COST_MARGIN

    def __post_init__(self):
        mrp = to_decimal(self.mrp_margin)
        cost = to_decimal(self.cost_margin)
        # cost <= selling <= mrp must hold for every derived triple
        if mrp is None or mrp < 1:
            raise InvalidAttribute("mrp_margin", "MRP margin must be at least 1")
        if cost is None or cost <= 0 or cost > 1:
            raise InvalidAttribute("cost_margin", "cost margin must be in (0, 1]")
        object.__setattr__(self, "mrp_margin", mrp)
        object.__setattr__(self, "cost_margin", cost)


@dataclass(frozen=True)
class PriceBreakdown:
    pricing_mode: str
    pure_metal_value: Decimal
    making_charge: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    loaded_metal_price: Decimal
    stone_value: Decimal
    final_price: Decimal
    # audit
    metal_type: Optional[str] = None
    metal_purity: Optional[int] = None
    purity_fraction: Optional[Decimal] = None
    metal_weight: Optional[Decimal] = None
    rate_per_gram: Optional[Decimal] = None
    making_charge_percent: Optional[Decimal] = None
    tax_percent: Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class CommercialPrices:
    selling_price: Decimal
    mrp: Decimal
    cost_price: Decimal

    def to_dict(self) -> dict:
        return {k: str(v) for k, v in asdict(self).items()}


def _mode(product) -> PricingMode:
    try:
        return PricingMode(getattr(product, "pricing_mode", None) or PricingMode.FIXED)
    except ValueError:
        raise InvalidAttribute("pricing_mode", f"unknown pricing mode: {product.pricing_mode}")


def _metal(value) -> str:
    return getattr(value, "value", value)


class PricingEngine:

    def __init__(self, policy: Optional[PricingPolicy] = None):
        self.policy = policy or PricingPolicy()

    def compute(self, product, market_rate_per_gram) -> PriceBreakdown:
        """
        Price breakdown for a product at the given market rate.

        Fixed mode is a pass-through: metal fields are zero and final_price is
        the stored selling price. Dynamic mode requires metal_weight > 0.

        Raises:
            InvalidAttribute: missing/invalid weight, purity, percentages or rate.
        """
        mode = _mode(product)

        if mode == PricingMode.FIXED:
            return PriceBreakdown(
                pricing_mode=mode.value,
                pure_metal_value=ZERO,
                making_charge=ZERO,
                taxable_amount=ZERO,
                tax_amount=ZERO,
                loaded_metal_price=ZERO,
                stone_value=product.stones.aggregate_value(),
                final_price=round_money(product.selling_price),
            )

        weight = to_decimal(product.metal_weight)
        if weight is None or weight <= 0:
            raise InvalidAttribute("metal_weight", "metal weight must be greater than zero for dynamic pricing")
        rate = to_decimal(market_rate_per_gram)
        if rate is None or rate < 0:
            raise InvalidAttribute("rate_per_gram", "market rate cannot be negative")

        metal = _metal(product.metal_type)
        fraction = purity_fraction(metal, product.metal_purity)
        pure = compute_base_value(weight, fraction, rate)
        charges = apply_charges(pure, product.making_charge_percent, product.tax_percent)
        stone_value = product.stones.aggregate_value()

        loaded = round_money(charges.loaded_price)
        return PriceBreakdown(
            pricing_mode=mode.value,
            pure_metal_value=round_money(pure),
            making_charge=round_money(charges.making_charge),
            taxable_amount=round_money(charges.taxable_amount),
            tax_amount=round_money(charges.tax_amount),
            loaded_metal_price=loaded,
            stone_value=stone_value,
            final_price=loaded + stone_value,
            metal_type=metal,
            metal_purity=purity_tier(product.metal_purity),
            purity_fraction=fraction,
            metal_weight=weight,
            rate_per_gram=rate,
            making_charge_percent=to_decimal(product.making_charge_percent),
            tax_percent=to_decimal(product.tax_percent),
        )

    def derive_commercial_prices(self, breakdown: PriceBreakdown) -> CommercialPrices:
        final = breakdown.final_price
        return CommercialPrices(
            selling_price=round_money(final),
            mrp=round_money(final * self.policy.mrp_margin),
            cost_price=round_money(final * self.policy.cost_margin),
        )

    def apply(self, product, breakdown: PriceBreakdown):
        """
        Auto-apply a breakdown to the product's commercial fields.
        Dynamic: selling/price/mrp/cost are overwritten. Fixed: only price = selling_price.
        Caller must commit.
        """
        if _mode(product) == PricingMode.FIXED:
            product.price = product.selling_price
            return product

        prices = self.derive_commercial_prices(breakdown)
        product.selling_price = prices.selling_price
        product.price = prices.selling_price
        product.mrp = prices.mrp
        product.cost_price = prices.cost_price
        product.last_price_update = now_utc()
        return product


# Singleton (default policy)
pricing_engine = PricingEngine()
