"""
Pricing Module - Stone Valuation
==================================
StoneValuation: one mounted stone/gem, valued at weight × unit_price.
StoneCollection: ordered stones of one product with an always-consistent aggregate.

Stones are edited field-by-field from the admin product form and persisted
inside their product (see catalog.models.Product.stones).
"""

import enum
import uuid
from decimal import Decimal
from typing import Iterator, List, Optional

from common.exceptions import IndexOutOfRange, InvalidAttribute
from common.helpers import round_money, to_decimal

ZERO = Decimal("0")


class StoneType(str, enum.Enum):
    DIAMOND = "Diamond"
    RUBY = "Ruby"
    EMERALD = "Emerald"
    SAPPHIRE = "Sapphire"
    PEARL = "Pearl"
    AMETHYST = "Amethyst"
    TOPAZ = "Topaz"
    GARNET = "Garnet"
    OPAL = "Opal"
    TURQUOISE = "Turquoise"
    OTHER = "Other"


# Known grades (quality itself is an open, non-empty string)
STONE_QUALITIES = [
    "VVS1", "VVS2", "VS1", "VS2", "SI1", "SI2", "I1", "I2",
    "AAA", "AA", "A", "B", "Natural", "Synthetic",
]

STONE_CUTS = [
    "Round", "Princess", "Emerald", "Asscher", "Oval", "Marquise",
    "Pear", "Heart", "Cushion", "Radiant", "Cabochon", "Other",
]

STONE_SETTINGS = [
    "Prong", "Bezel", "Channel", "Pave", "Halo", "Tension", "Cluster", "Other",
]

# Fields an editor may set; total_value and id are derived/assigned
EDITABLE_FIELDS = ("stone_type", "quality", "weight", "unit_price", "color", "cut", "setting")


def _stone_type(value) -> StoneType:
    if isinstance(value, StoneType):
        return value
    for member in StoneType:
        if str(value or "").strip().lower() == member.value.lower():
            return member
    raise InvalidAttribute("stone_type", f"unknown stone type: {value}")


def _quality(value) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidAttribute("quality", "stone quality cannot be empty")
    return text


def _non_negative(value, field: str) -> Decimal:
    d = ZERO if value is None or value == "" else to_decimal(value)
    if d is None or d < 0:
        raise InvalidAttribute(field, f"{field} must be a non-negative number")
    return d


class StoneValuation:
    """One mounted stone. total_value is always weight × unit_price."""

    __slots__ = ("id", "stone_type", "quality", "_weight", "_unit_price", "color", "cut", "setting")

    def __init__(
        self,
        stone_type=StoneType.DIAMOND,
        quality: str = "VS1",
        weight=ZERO,
        unit_price=ZERO,
        color: str = "Colorless",
        cut: str = "Round",
        setting: str = "Prong",
        id: Optional[str] = None,
    ):
        self.id = id or uuid.uuid4().hex
        self.stone_type = _stone_type(stone_type)
        self.quality = _quality(quality)
        self._weight = _non_negative(weight, "weight")
        self._unit_price = _non_negative(unit_price, "unit_price")
        self.color = color
        self.cut = cut
        self.setting = setting

    @property
    def weight(self) -> Decimal:
        return self._weight

    @property
    def unit_price(self) -> Decimal:
        return self._unit_price

    @property
    def total_value(self) -> Decimal:
        return self._weight * self._unit_price

    @property
    def weight_unit(self) -> str:
        return "pieces" if self.stone_type == StoneType.PEARL else "carats"

    def set_field(self, field: str, value):
        """Validate then set one editable field; no change on failure."""
        if field not in EDITABLE_FIELDS:
            raise InvalidAttribute(field, f"{field} is not an editable stone field")
        if field == "weight":
            self._weight = _non_negative(value, "weight")
        elif field == "unit_price":
            self._unit_price = _non_negative(value, "unit_price")
        elif field == "stone_type":
            self.stone_type = _stone_type(value)
        elif field == "quality":
            self.quality = _quality(value)
        else:
            setattr(self, field, value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stone_type": self.stone_type.value,
            "quality": self.quality,
            "weight": str(self._weight),
            "weight_unit": self.weight_unit,
            "unit_price": str(self._unit_price),
            "total_value": str(round_money(self.total_value)),
            "color": self.color,
            "cut": self.cut,
            "setting": self.setting,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoneValuation":
        # total_value is never trusted from storage; it is re-derived
        return cls(
            stone_type=data.get("stone_type", StoneType.DIAMOND),
            quality=data.get("quality", "VS1"),
            weight=data.get("weight", ZERO),
            unit_price=data.get("unit_price", ZERO),
            color=data.get("color", "Colorless"),
            cut=data.get("cut", "Round"),
            setting=data.get("setting", "Prong"),
            id=data.get("id"),
        )

    def __repr__(self):
        return f"<Stone {self.stone_type.value} {self.quality} {self._weight}×{self._unit_price}>"


class StoneCollection:
    """
    Ordered stones of one product. Index = position (insertion order).
    Every mutation validates first, so a rejected call leaves the collection unchanged.
    """

    def __init__(self, stones: Optional[List[StoneValuation]] = None):
        self._stones: List[StoneValuation] = list(stones or [])

    def __len__(self) -> int:
        return len(self._stones)

    def __iter__(self) -> Iterator[StoneValuation]:
        return iter(self._stones)

    def __getitem__(self, index: int) -> StoneValuation:
        return self._stones[self._check_index(index)]

    def _check_index(self, index) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRange(index, len(self._stones))
        if index < 0 or index >= len(self._stones):
            raise IndexOutOfRange(index, len(self._stones))
        return index

    def add(self, stone_type=StoneType.DIAMOND, quality: str = "VS1", weight=ZERO, unit_price=ZERO,
            color: str = "Colorless", cut: str = "Round", setting: str = "Prong") -> StoneValuation:
        """Append a stone; weight and unit_price default to zero."""
        stone = StoneValuation(
            stone_type=stone_type, quality=quality, weight=weight, unit_price=unit_price,
            color=color, cut=cut, setting=setting,
        )
        self._stones.append(stone)
        return stone

    def update(self, index: int, field: str, value) -> StoneValuation:
        """
        Set one field of the stone at index. weight/unit_price re-derive total_value.

        Raises:
            InvalidAttribute: bad field name or value (checked before the index).
            IndexOutOfRange: no stone at index.
        """
        if field in ("weight", "unit_price"):
            _non_negative(value, field)
        elif field not in EDITABLE_FIELDS:
            raise InvalidAttribute(field, f"{field} is not an editable stone field")
        stone = self._stones[self._check_index(index)]
        stone.set_field(field, value)
        return stone

    def remove(self, index: int) -> StoneValuation:
        return self._stones.pop(self._check_index(index))

    def find(self, stone_id: str) -> Optional[int]:
        """Position of the stone with this id, or None."""
        for i, stone in enumerate(self._stones):
            if stone.id == stone_id:
                return i
        return None

    def raw_aggregate(self) -> Decimal:
        return sum((s.total_value for s in self._stones), ZERO)

    def aggregate_value(self) -> Decimal:
        """Sum of all stone values, rounded to 2 places."""
        return round_money(self.raw_aggregate())

    def to_records(self) -> List[dict]:
        return [s.to_dict() for s in self._stones]

    @classmethod
    def from_records(cls, records) -> "StoneCollection":
        return cls([StoneValuation.from_dict(r) for r in (records or [])])

    def __repr__(self):
        return f"<StoneCollection n={len(self._stones)} value={self.aggregate_value()}>"
