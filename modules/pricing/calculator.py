"""
Pricing Module - Calculator
=============================
Metal valuation and charge model for jewelry pricing.

    base    = weight × purity_fraction × rate_per_gram
    making  = base × making_charge% / 100
    taxable = base + making
    tax     = taxable × tax% / 100
    loaded  = taxable + tax

Everything here works on unrounded Decimals; rounding happens when a
breakdown is reported (see engine.PriceBreakdown).
"""

import enum
from dataclasses import dataclass
from decimal import Decimal

from common.exceptions import InvalidAttribute
from common.helpers import to_decimal

D = Decimal
HUNDRED = D("100")

# Grams per troy ounce (spot quotes are per ounce)
TROY_OUNCE_GRAMS = D("31.1035")


class MetalType(str, enum.Enum):
    GOLD = "gold"
    SILVER = "silver"
    PLATINUM = "platinum"


# ==========================================
# Purity tiers → fraction of pure metal by mass
# ==========================================
# gold: karat; silver/platinum: millesimal fineness
PURITY_FRACTIONS = {
    MetalType.GOLD.value: {
        24: D("0.999"),
        22: D("0.917"),
        18: D("0.75"),
        14: D("0.583"),
        10: D("0.417"),
    },
    MetalType.SILVER.value: {
        999: D("0.999"),
        950: D("0.95"),
        925: D("0.925"),   # sterling
        900: D("0.9"),
        835: D("0.835"),
        800: D("0.8"),
    },
    MetalType.PLATINUM.value: {
        999: D("0.999"),
        950: D("0.95"),
        900: D("0.9"),
        850: D("0.85"),
    },
}

# Default tier offered by the product form
DEFAULT_PURITY = {
    MetalType.GOLD.value: 22,
    MetalType.SILVER.value: 925,
    MetalType.PLATINUM.value: 950,
}

PURITY_LABELS = {
    MetalType.GOLD.value: {24: "24K", 22: "22K", 18: "18K", 14: "14K", 10: "10K"},
}


def _metal_key(metal) -> str:
    return metal.value if isinstance(metal, MetalType) else str(metal or "").strip().lower()


def purity_tiers(metal) -> list:
    """Supported purity tiers for a metal, highest first."""
    return sorted(PURITY_FRACTIONS.get(_metal_key(metal), {}), reverse=True)


def purity_tier(tier) -> int:
    """Coerce a purity input to its integer tier; 22, "22" and 22.0 pass, 22.7 does not."""
    d = to_decimal(tier)
    if d is None or d != d.to_integral_value():
        raise InvalidAttribute("metal_purity", f"invalid purity tier: {tier}")
    return int(d)


def purity_fraction(metal, tier) -> Decimal:
    """
    Look up the pure-metal fraction of a purity tier.

    Raises:
        InvalidAttribute: unknown metal or tier.
    """
    table = PURITY_FRACTIONS.get(_metal_key(metal))
    if table is None:
        raise InvalidAttribute("metal_type", f"unsupported metal: {metal}")
    key = purity_tier(tier)
    if key not in table:
        allowed = ", ".join(str(t) for t in purity_tiers(metal))
        raise InvalidAttribute("metal_purity", f"purity {tier} not supported for {_metal_key(metal)} (allowed: {allowed})")
    return table[key]


def purity_label(metal, tier) -> str:
    return PURITY_LABELS.get(_metal_key(metal), {}).get(int(tier), str(tier))


# ==========================================
# Metal valuation
# ==========================================

def compute_base_value(weight, fraction, rate_per_gram) -> Decimal:
    """
    Pure metal value of an item.

    Args:
        weight: Metal weight in grams, must be > 0
        fraction: Fraction of pure metal, in (0, 1]
        rate_per_gram: Market rate of pure metal per gram, >= 0

    Raises:
        InvalidAttribute: any argument outside its domain.
    """
    d_weight = to_decimal(weight)
    if d_weight is None or d_weight <= 0:
        raise InvalidAttribute("metal_weight", "metal weight must be greater than zero")

    d_fraction = to_decimal(fraction)
    if d_fraction is None or d_fraction <= 0 or d_fraction > 1:
        raise InvalidAttribute("metal_purity", "purity fraction must be in (0, 1]")

    d_rate = to_decimal(rate_per_gram)
    if d_rate is None or d_rate < 0:
        raise InvalidAttribute("rate_per_gram", "market rate cannot be negative")

    return d_weight * d_fraction * d_rate


# ==========================================
# Charge model
# ==========================================

@dataclass(frozen=True)
class ChargeResult:
    making_charge: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    loaded_price: Decimal


def _percent(value, field: str) -> Decimal:
    d = to_decimal(value)
    if d is None or d < 0 or d > HUNDRED:
        raise InvalidAttribute(field, f"{field} must be between 0 and 100")
    return d


def apply_charges(base, making_charge_percent, tax_percent) -> ChargeResult:
    """
    Apply making charge, then tax on (base + making charge).

    Raises:
        InvalidAttribute: negative base or a percentage outside [0, 100].
    """
    d_base = to_decimal(base)
    if d_base is None or d_base < 0:
        raise InvalidAttribute("base_value", "base value cannot be negative")
    d_making_pct = _percent(making_charge_percent, "making_charge_percent")
    d_tax_pct = _percent(tax_percent, "tax_percent")

    making = d_base * d_making_pct / HUNDRED
    taxable = d_base + making
    tax = taxable * d_tax_pct / HUNDRED

    return ChargeResult(
        making_charge=making,
        taxable_amount=taxable,
        tax_amount=tax,
        loaded_price=taxable + tax,
    )


def spot_per_ounce_to_gram(price_per_ounce) -> Decimal:
    """Convert a troy-ounce spot quote to a per-gram rate."""
    d = to_decimal(price_per_ounce)
    if d is None or d < 0:
        raise InvalidAttribute("rate_per_gram", f"invalid spot price: {price_per_ounce}")
    return d / TROY_OUNCE_GRAMS
