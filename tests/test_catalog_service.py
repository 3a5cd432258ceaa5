from decimal import Decimal

import pytest

from common.exceptions import (
    IndexOutOfRange, InvalidAttribute, MissingAttribute, NotFoundError, PriceInversion, RateUnavailableError,
)
from modules.catalog.models import Product
from modules.catalog.service import product_service
from modules.pricing.service import update_asset_rate

RING = {
    "name": "Solitaire Ring",
    "sku": "RNG-001",
    "pricing_mode": "dynamic",
    "metal_type": "gold",
    "metal_weight": "5.5",
    "metal_purity": 22,
    "stones": [
        {"stone_type": "Diamond", "quality": "VS1", "weight": "0.5", "unit_price": "50000"},
        {"stone_type": "Ruby", "quality": "AAA", "weight": "1", "unit_price": "20000"},
    ],
}


@pytest.fixture()
def stored_ring(db):
    p = product_service.create(db, dict(RING))
    db.commit()
    return p


class TestCrud:

    def test_create_applies_metal_defaults(self, stored_ring):
        assert stored_ring.id is not None
        assert stored_ring.making_charge_percent == Decimal("15")
        assert stored_ring.tax_percent == Decimal("3")
        assert len(stored_ring.stones) == 2

    def test_silver_defaults(self, db):
        p = product_service.create(db, {"name": "Anklet", "sku": "ANK-1", "metal_type": "silver"})
        assert p.metal_purity == 925
        assert p.making_charge_percent == Decimal("20")

    def test_create_requires_name_and_sku(self, db):
        with pytest.raises(MissingAttribute):
            product_service.create(db, {"sku": "X-1"})

    def test_duplicate_sku(self, db, stored_ring):
        with pytest.raises(InvalidAttribute) as exc:
            product_service.create(db, {"name": "Copy", "sku": "RNG-001"})
        assert exc.value.field == "sku"

    def test_invalid_enums(self, db):
        with pytest.raises(InvalidAttribute):
            product_service.create(db, {"name": "A", "sku": "A-1", "pricing_mode": "auction"})
        with pytest.raises(InvalidAttribute):
            product_service.create(db, {"name": "A", "sku": "A-1", "metal_type": "copper"})
        with pytest.raises(InvalidAttribute):
            product_service.create(db, {"name": "A", "sku": "A-1", "metal_type": "gold", "metal_purity": 925})

    def test_dynamic_without_weight_rejected(self, db):
        with pytest.raises(MissingAttribute):
            product_service.create(db, {"name": "A", "sku": "A-1", "pricing_mode": "dynamic"})

    def test_update(self, db, stored_ring):
        product_service.update(db, stored_ring.id, {"metal_purity": 18, "description": "18K variant"})
        db.commit()
        assert product_service.get_by_id(db, stored_ring.id).metal_purity == 18

    def test_update_rejects_inversion(self, db, stored_ring):
        with pytest.raises(PriceInversion):
            product_service.update(db, stored_ring.id, {"selling_price": "100", "mrp": "90"})
        db.rollback()
        assert product_service.get_by_id(db, stored_ring.id).mrp == 0

    def test_rejected_update_is_not_persisted(self, db, stored_ring):
        product_service.update(db, stored_ring.id, {"cost_price": "40", "selling_price": "50", "mrp": "60"})
        db.commit()
        with pytest.raises(PriceInversion):
            product_service.update(db, stored_ring.id, {"selling_price": "100", "mrp": "90"})
        db.commit()
        db.expire_all()
        p = product_service.get_by_id(db, stored_ring.id)
        assert p.selling_price == Decimal("50")
        assert p.mrp == Decimal("60")
        assert p.price == Decimal("50")

    @pytest.mark.parametrize("purity", [22.7, "22.5", Decimal("18.1")])
    def test_fractional_purity_rejected(self, db, stored_ring, purity):
        with pytest.raises(InvalidAttribute) as exc:
            product_service.update(db, stored_ring.id, {"metal_purity": purity})
        assert exc.value.field == "metal_purity"
        assert stored_ring.metal_purity == 22

    def test_integral_purity_forms_accepted(self, db):
        p = product_service.create(db, {"name": "A", "sku": "A-1", "metal_purity": "18.0"})
        assert p.metal_purity == 18

    def test_enum_inputs_normalized(self, db):
        p = product_service.create(db, {"name": "A", "sku": "A-1", "metal_type": " Silver ", "pricing_mode": "FIXED"})
        assert p.metal_type == "silver"
        assert p.pricing_mode == "fixed"

    def test_not_found(self, db):
        with pytest.raises(NotFoundError):
            product_service.get_by_id(db, 999)

    def test_list_all(self, db, stored_ring):
        product_service.create(db, {"name": "Off", "sku": "OFF-1", "is_active": False})
        db.commit()
        assert len(product_service.list_all(db)) == 2
        assert [p.sku for p in product_service.list_all(db, active_only=True)] == ["RNG-001"]


class TestStones:

    def test_add_update_remove_persist(self, db, stored_ring):
        product_service.add_stone(db, stored_ring.id, {"stone_type": "Emerald", "weight": "2", "unit_price": "1000"})
        db.commit()
        assert product_service.get_by_id(db, stored_ring.id).stones.aggregate_value() == Decimal("47000.00")

        product_service.update_stone(db, stored_ring.id, 2, "weight", "3")
        db.commit()
        assert product_service.get_by_id(db, stored_ring.id).stones.aggregate_value() == Decimal("48000.00")

        product_service.remove_stone(db, stored_ring.id, 0)
        db.commit()
        stones = product_service.get_by_id(db, stored_ring.id).stones
        assert len(stones) == 2
        assert stones.aggregate_value() == Decimal("23000.00")

    def test_bad_edit_leaves_stones(self, db, stored_ring):
        with pytest.raises(InvalidAttribute):
            product_service.update_stone(db, stored_ring.id, 5, "weight", -1)
        with pytest.raises(IndexOutOfRange):
            product_service.remove_stone(db, stored_ring.id, 9)
        db.rollback()
        assert len(product_service.get_by_id(db, stored_ring.id).stones) == 2

    def test_stone_edit_runs_save_rules(self, db, stored_ring):
        db.query(Product).filter(Product.id == stored_ring.id).update({"selling_price": 100, "mrp": 90})
        db.commit()
        with pytest.raises(PriceInversion):
            product_service.add_stone(db, stored_ring.id, {"stone_type": "Emerald", "weight": "1", "unit_price": "10"})
        db.commit()
        db.expire_all()
        assert len(product_service.get_by_id(db, stored_ring.id).stones) == 2


class TestPricing:

    def test_preview_does_not_write(self, db, gold_rate, stored_ring):
        result = product_service.price(db, stored_ring)
        assert result["breakdown"].final_price == Decimal("80844.15")
        assert result["commercial"].mrp == Decimal("88928.57")
        assert result["applied"] is False
        assert stored_ring.selling_price == 0

    def test_auto_apply(self, db, gold_rate, stored_ring):
        product_service.price(db, stored_ring, auto_apply=True)
        db.commit()
        p = product_service.get_by_id(db, stored_ring.id)
        assert p.selling_price == Decimal("80844.15")
        assert p.price == Decimal("80844.15")
        assert p.mrp == Decimal("88928.57")
        assert p.cost_price == Decimal("56590.91")

    def test_fixed_product_needs_no_rate(self, db):
        p = product_service.create(db, {
            "name": "Chain", "sku": "CHN-1", "metal_type": "gold",
            "cost_price": "50", "selling_price": "80", "mrp": "90",
        })
        result = product_service.price(db, p, auto_apply=True)
        assert result["breakdown"].final_price == Decimal("80.00")
        assert result["commercial"] is None
        assert p.price == Decimal("80")

    def test_unquoted_metal_cannot_be_priced(self, db, stored_ring):
        # Freshly seeded assets carry no rate until the first quote
        with pytest.raises(RateUnavailableError):
            product_service.price(db, stored_ring)
        summary = product_service.reprice_dynamic(db)
        assert summary["updated"] == 0
        assert summary["errors"] == 1

    def test_missing_rate(self, db, stored_ring):
        db.query(Product).filter(Product.id == stored_ring.id).update({"metal_type": "platinum", "metal_purity": 950})
        db.commit()
        from modules.pricing.models import Asset
        db.query(Asset).filter(Asset.asset_code == "platinum").delete()
        db.commit()
        with pytest.raises(RateUnavailableError):
            product_service.price(db, product_service.get_by_id(db, stored_ring.id))


class TestReprice:

    def test_reprices_dynamic_only(self, db, gold_rate, stored_ring):
        product_service.create(db, {
            "name": "Chain", "sku": "CHN-1", "cost_price": "50", "selling_price": "80", "mrp": "90",
        })
        db.commit()

        summary = product_service.reprice_dynamic(db)
        db.commit()

        assert summary["updated"] == 1
        assert summary["errors"] == 0
        row = summary["results"][0]
        assert row["sku"] == "RNG-001"
        assert row["new_selling_price"] == "80844.15"
        assert row["new_mrp"] == "88928.57"
        assert product_service.get_by_id(db, stored_ring.id).selling_price == Decimal("80844.15")

    def test_rate_increase_moves_prices(self, db, gold_rate, stored_ring):
        product_service.reprice_dynamic(db)
        db.commit()
        update_asset_rate(db, "gold", "6500", updated_by="admin")
        db.commit()
        summary = product_service.reprice_dynamic(db, product_ids=[stored_ring.id])
        db.commit()
        row = summary["results"][0]
        assert Decimal(row["new_selling_price"]) > Decimal(row["old_selling_price"])

    def test_errors_are_collected(self, db, gold_rate, stored_ring):
        p = product_service.create(db, {
            "name": "Band", "sku": "BND-1", "pricing_mode": "dynamic",
            "metal_type": "platinum", "metal_weight": "4",
        })
        db.commit()
        from modules.pricing.models import Asset
        db.query(Asset).filter(Asset.asset_code == "platinum").delete()
        db.commit()

        summary = product_service.reprice_dynamic(db)
        assert summary["updated"] == 1
        assert summary["errors"] == 1
        assert summary["error_details"][0]["sku"] == "BND-1"
        assert product_service.get_by_id(db, p.id).selling_price == 0
