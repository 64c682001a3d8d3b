"""
Tests for product duplication and the sequential copy-SKU probe.
"""

import json

import pytest
from sqlalchemy import func, select

from catalog_api.models import AuditLog, InventorySnapshot
from catalog_api.services.domain import resolve_duplicate_sku
from catalog_shared.schemas import ProductUpdate
from catalog_shared.utils.exceptions import ConflictError, InternalError, NotFoundError


class TestResolveDuplicateSku:
    def test_first_copy_suffix(self, db_session, seed_org):
        assert resolve_duplicate_sku(db_session, seed_org.id, "BASE-1") == "BASE-1-COPY"

    def test_requested_sku_is_trimmed(self, db_session, seed_org):
        assert resolve_duplicate_sku(db_session, seed_org.id, "BASE-1", "  NEW-1 ") == "NEW-1"

    def test_blank_request_falls_back_to_probe(self, db_session, seed_org):
        assert resolve_duplicate_sku(db_session, seed_org.id, "BASE-1", "   ") == "BASE-1-COPY"

    def test_probe_is_bounded(self, db_session, seed_org, make_product):
        make_product("X-COPY")
        make_product("X-COPY-2")

        with pytest.raises(InternalError) as exc_info:
            resolve_duplicate_sku(db_session, seed_org.id, "X", max_attempts=2)
        assert exc_info.value.code == "unexpectedError"

        assert resolve_duplicate_sku(db_session, seed_org.id, "X", max_attempts=3) == "X-COPY-3"


class TestDuplicateProduct:
    """Tests for ProductService.duplicate_product()"""

    @pytest.fixture
    def source(self, make_product):
        return make_product(
            "BASE-1",
            category="Drinks",
            barcodes=["4800000000000"],
            packs=[{"pack_name": "Box", "pack_barcode": "111", "multiplier_to_base": 6}],
            images=[{"url": "https://img.example.com/a.jpg"}, {"url": "https://img.example.com/b.jpg"}],
            variants=[
                {"name": "Small", "attributes": {"size": "S", "tags": ["eco"]}},
                {"name": "Large", "attributes": {"size": "L"}},
            ],
            base_price_kgs=10,
        )

    def test_successive_copies_get_sequential_skus(self, product_service, actor, source):
        skus = [product_service.duplicate_product(source.id, actor).sku for _ in range(3)]

        assert skus == ["BASE-1-COPY", "BASE-1-COPY-2", "BASE-1-COPY-3"]

    def test_requested_sku_taken(self, product_service, actor, make_product, source):
        make_product("TAKEN")

        with pytest.raises(ConflictError) as exc_info:
            product_service.duplicate_product(source.id, actor, sku="TAKEN")
        assert exc_info.value.code == "uniqueConstraintViolation"

    def test_requested_sku_used(self, product_service, actor, source):
        result = product_service.duplicate_product(source.id, actor, sku="BASE-2")

        assert result.sku == "BASE-2"
        assert result.copied_barcodes is False

    def test_copy_content(self, product_service, actor, source):
        result = product_service.duplicate_product(source.id, actor)
        copy = product_service.get_product(result.product_id, actor.organization_id)

        assert copy.id != source.id
        assert copy.name == source.name
        assert copy.category == "Drinks"
        assert copy.base_price_kgs == source.base_price_kgs
        assert copy.photo_url == source.photo_url
        assert [image.url for image in copy.images] == [image.url for image in source.images]

    def test_barcodes_never_copied(self, product_service, actor, source):
        result = product_service.duplicate_product(source.id, actor)
        copy = product_service.get_product(result.product_id, actor.organization_id)

        assert copy.barcodes == []
        assert [(pack.pack_name, pack.pack_barcode, pack.multiplier_to_base) for pack in copy.packs] == [
            ("Box", None, 6)
        ]

    def test_active_variants_copied_with_values(self, product_service, actor, source):
        small = next(variant for variant in source.variants if variant.name == "Small")
        large = next(variant for variant in source.variants if variant.name == "Large")
        product_service.update_product(
            source.id,
            ProductUpdate(
                sku=source.sku,
                name=source.name,
                category=source.category,
                base_unit_id=source.base_unit_id,
                barcodes=source.barcodes,
                variants=[{"id": small.id, "name": small.name, "attributes": small.attributes}],
            ),
            actor,
        )

        result = product_service.duplicate_product(source.id, actor)
        copy = product_service.get_product(result.product_id, actor.organization_id)

        assert [variant.name for variant in copy.variants] == ["Small"]
        assert copy.variants[0].id not in {small.id, large.id}
        assert copy.variants[0].attribute_values == {"size": "S", "tags": ["eco"]}

    def test_bundle_components_copied(self, product_service, actor, make_product, source):
        bundle = make_product(
            "BUNDLE-1",
            is_bundle=True,
            bundle_components=[{"component_product_id": source.id, "qty": 2}],
        )

        result = product_service.duplicate_product(bundle.id, actor)
        copy = product_service.get_product(result.product_id, actor.organization_id)

        assert copy.is_bundle is True
        assert [(c.component_product_id, c.qty) for c in copy.bundle_components] == [(source.id, 2)]

    def test_archived_source_can_be_copied(self, product_service, actor, source):
        product_service.archive_product(source.id, actor)

        result = product_service.duplicate_product(source.id, actor)

        assert product_service.get_product(result.product_id, actor.organization_id).is_deleted is False

    def test_snapshots_and_audit(self, db_session, product_service, actor, seed_stores, source):
        result = product_service.duplicate_product(source.id, actor)

        snapshots = db_session.scalar(
            select(func.count())
            .select_from(InventorySnapshot)
            .where(InventorySnapshot.product_id == result.product_id)
        )
        assert snapshots == len(seed_stores)

        entry = db_session.scalar(select(AuditLog).where(AuditLog.entity_id == result.product_id))
        assert entry.action == "PRODUCT_CREATE"
        assert json.loads(entry.before) == {"sourceProductId": source.id}

    def test_plan_limit_applies(self, db_session, product_service, actor, seed_org, source):
        seed_org.max_products = 1
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            product_service.duplicate_product(source.id, actor)
        assert exc_info.value.code == "planLimitProducts"

    def test_other_tenant_source(self, product_service, other_actor, source):
        with pytest.raises(NotFoundError) as exc_info:
            product_service.duplicate_product(source.id, other_actor)
        assert exc_info.value.code == "productNotFound"
