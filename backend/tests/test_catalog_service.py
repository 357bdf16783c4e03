"""
Catalog tests: categories, products, and the rule that stock is never edited directly.
"""

import pytest

from ims.errors import ConstraintViolation, NotFound, ValidationError
from ims.services import audit_service, catalog_service
from ims.services.audit_service import (
    MODULE_CATEGORY,
    MODULE_INVENTORY,
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_UPDATE,
)


class TestCategories:

    def test_create_and_list(self, db_session):
        catalog_service.create_category(name="Snacks", created_by="admin")
        catalog_service.create_category(name="  Beverages ", created_by="admin")

        assert [c.name for c in catalog_service.list_categories()] == ["Beverages", "Snacks"]

    def test_duplicate_name_rejected(self, db_session, category):
        with pytest.raises(ConstraintViolation):
            catalog_service.create_category(name="Beverages", created_by="admin")

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_category(name="   ", created_by="admin")

    def test_delete_unused_category(self, db_session):
        category = catalog_service.create_category(name="Seasonal", created_by="admin")
        category_id = category.id

        catalog_service.delete_category(category_id=category_id, deleted_by="admin")

        assert catalog_service.list_categories() == []
        entries = audit_service.list_for_target(category_id, module=MODULE_CATEGORY)
        assert [e.action for e in entries] == [ACTION_CREATE, ACTION_DELETE]
        assert entries[1].old_state["name"] == "Seasonal"

    def test_delete_referenced_category_blocked(self, db_session, category, product):
        with pytest.raises(ConstraintViolation) as excinfo:
            catalog_service.delete_category(category_id=category.id, deleted_by="admin")

        assert excinfo.value.details["product_count"] == 1
        assert [c.id for c in catalog_service.list_categories()] == [category.id]

    def test_delete_unknown_category(self, db_session):
        with pytest.raises(NotFound):
            catalog_service.delete_category(category_id=999, deleted_by="admin")


class TestProducts:

    def test_opening_stock_seeds_current_stock(self, db_session, product):
        assert product.opening_stock == 10
        assert product.current_stock == 10

        entries = audit_service.list_for_target(product.id, module=MODULE_INVENTORY)
        assert [e.action for e in entries] == [ACTION_CREATE]

    def test_unknown_category(self, db_session):
        with pytest.raises(NotFound):
            catalog_service.create_product(name="Orphan", category_id=77, created_by="admin")

    def test_negative_price_rejected(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product(name="Bad", selling_price_cents=-1, created_by="admin")

    def test_update_prices_is_audited(self, db_session, product):
        updated = catalog_service.update_product(
            product_id=product.id, patch={"selling_price_cents": 350}, changed_by="admin"
        )

        assert updated.selling_price_cents == 350
        entries = audit_service.list_for_target(product.id, module=MODULE_INVENTORY)
        assert entries[-1].action == ACTION_UPDATE
        assert entries[-1].old_state == {"selling_price_cents": 300}
        assert entries[-1].new_state == {"selling_price_cents": 350}

    @pytest.mark.parametrize("field", ["current_stock", "opening_stock"])
    def test_stock_fields_cannot_be_patched(self, db_session, product, field):
        with pytest.raises(ValidationError):
            catalog_service.update_product(product_id=product.id, patch={field: 99}, changed_by="admin")
        assert catalog_service.get_product(product.id).current_stock == 10

    def test_unknown_field_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            catalog_service.update_product(product_id=product.id, patch={"colour": "green"}, changed_by="admin")

    def test_list_by_category(self, db_session, category, product, last_unit_product):
        assert [p.id for p in catalog_service.list_products(category_id=category.id)] == [product.id]
        assert len(catalog_service.list_products()) == 2
