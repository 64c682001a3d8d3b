"""
Tests for ProductService - the catalog mutation coordinator.

Tests cover:
- Create with packs, barcodes, images, variants and bundle components
- Tenant-wide SKU and barcode uniqueness
- Update with variant reconciliation and history guards
- Archive / restore and bulk category assignment
- Transactions leave nothing behind on failure
"""

import json
from decimal import Decimal

import pytest
from sqlalchemy import delete, func, select

from catalog_api.models import (
    AuditLog,
    InventorySnapshot,
    OrganizationEvent,
    Product,
    ProductBarcode,
    ProductCategory,
    ProductCost,
    ProductVariant,
    PurchaseOrderLine,
    StockMovement,
    Unit,
    VariantAttributeValue,
)
from catalog_api.repositories import ProductRepository
from catalog_api.services.domain import ProductService
from catalog_api.services.domain.integrity import IntegrityGuard
from catalog_shared.schemas import ProductCreate, ProductUpdate
from catalog_shared.utils.exceptions import ConflictError, NotFoundError, ValidationError


def _update_payload(product, **overrides) -> ProductUpdate:
    """ProductUpdate that keeps the product as it is unless overridden."""
    data = {
        "sku": product.sku,
        "name": product.name,
        "category": product.category,
        "base_unit_id": product.base_unit_id,
        "barcodes": list(product.barcodes),
    }
    data.update(overrides)
    return ProductUpdate(**data)


def _variant_payload(variant, **overrides) -> dict:
    data = {"id": variant.id, "name": variant.name, "attributes": dict(variant.attributes)}
    data.update(overrides)
    return data


def _count(db_session, model, *where) -> int:
    return db_session.scalar(select(func.count()).select_from(model).where(*where)) or 0


class TestCreateProduct:
    """Tests for ProductService.create_product()"""

    def test_round_trip_returns_normalized_form(self, make_product, seed_units):
        product = make_product(
            "  SKU-1 ",
            name=" Cola ",
            category=" Soft   drinks ",
            barcodes=[" 4006381333931 ", "", "ABC"],
            packs=[
                {"pack_name": " Box ", "pack_barcode": " 111 ", "multiplier_to_base": 6.5},
                {"pack_name": "", "multiplier_to_base": 1},
            ],
            images=[
                {"url": "https://img.example.com/b.jpg", "position": 5},
                {"url": "https://img.example.com/a.jpg", "position": 1},
            ],
            variants=[
                {"name": "Small", "attributes": {"size": "S", "weight": "0.5", "tags": ["eco", "eco"]}},
            ],
            base_price_kgs=12.5,
        )

        assert product.sku == "SKU-1"
        assert product.name == "Cola"
        assert product.category == "Soft drinks"
        assert product.unit == "pcs"
        assert product.base_unit_id == seed_units["pcs"].id
        assert product.base_price_kgs == Decimal("12.50")
        assert sorted(product.barcodes) == ["4006381333931", "ABC"]
        assert [(pack.pack_name, pack.pack_barcode, pack.multiplier_to_base) for pack in product.packs] == [
            ("Box", "111", 6)
        ]
        assert [(image.url, image.position) for image in product.images] == [
            ("https://img.example.com/a.jpg", 0),
            ("https://img.example.com/b.jpg", 1),
        ]
        assert product.photo_url == "https://img.example.com/a.jpg"
        assert len(product.variants) == 1
        assert product.variants[0].attribute_values == {"size": "S", "weight": 0.5, "tags": ["eco"]}
        assert product.is_bundle is False
        assert product.is_deleted is False

    def test_photo_without_images_becomes_first_image(self, make_product):
        product = make_product("SKU-1", photo_url="//cdn.example.com/p.jpg")

        assert product.photo_url == "https://cdn.example.com/p.jpg"
        assert [(image.url, image.position) for image in product.images] == [
            ("https://cdn.example.com/p.jpg", 0)
        ]

    def test_explicit_photo_overrides_first_image(self, make_product):
        product = make_product(
            "SKU-1",
            photo_url="https://cdn.example.com/cover.jpg",
            images=[{"url": "https://cdn.example.com/a.jpg"}],
        )

        assert product.photo_url == "https://cdn.example.com/cover.jpg"
        assert [image.url for image in product.images] == ["https://cdn.example.com/a.jpg"]

    def test_unusable_images_dropped(self, make_product):
        product = make_product(
            "SKU-1",
            images=[{"url": "ftp://files.example.com/a.jpg"}, {"url": "http://localhost/b.jpg"}],
        )

        assert product.images == []
        assert product.photo_url is None

    def test_category_registered_once(self, db_session, make_product, seed_org):
        make_product("SKU-1", category="Soft drinks")
        make_product("SKU-2", category="  Soft    drinks")

        names = db_session.scalars(
            select(ProductCategory.name).where(ProductCategory.organization_id == seed_org.id)
        ).all()
        assert names == ["Soft drinks"]

    def test_base_snapshot_for_every_store(self, db_session, make_product, seed_stores):
        product = make_product("SKU-1")

        snapshots = db_session.scalars(
            select(InventorySnapshot).where(InventorySnapshot.product_id == product.id)
        ).all()
        assert {snapshot.store_id for snapshot in snapshots} == {store.id for store in seed_stores}
        assert all(snapshot.variant_key == "BASE" for snapshot in snapshots)
        assert all(snapshot.on_hand == 0 and snapshot.on_order == 0 for snapshot in snapshots)
        by_store = {snapshot.store_id: snapshot for snapshot in snapshots}
        assert by_store[seed_stores[1].id].allow_negative_stock is True

    def test_average_cost_preferred_over_purchase_price(self, db_session, make_product):
        product = make_product("SKU-1", purchase_price_kgs=7, avg_cost_kgs=5.25)

        cost = db_session.scalar(select(ProductCost).where(ProductCost.product_id == product.id))
        assert cost.avg_cost_kgs == Decimal("5.25")
        assert cost.cost_basis_qty == 1
        assert cost.variant_key == "BASE"

    def test_no_cost_row_without_cost(self, db_session, make_product):
        product = make_product("SKU-1")
        assert _count(db_session, ProductCost, ProductCost.product_id == product.id) == 0

    def test_negative_price_rejected(self, make_product):
        with pytest.raises(ValidationError) as exc_info:
            make_product("SKU-1", purchase_price_kgs=-1)
        assert exc_info.value.code == "unitCostInvalid"

    def test_audit_entry_written(self, db_session, make_product, actor):
        product = make_product("SKU-1")

        entry = db_session.scalar(select(AuditLog).where(AuditLog.entity_id == product.id))
        assert entry.action == "PRODUCT_CREATE"
        assert entry.before is None
        assert json.loads(entry.after)["sku"] == "SKU-1"
        assert entry.actor_id == actor.actor_id
        assert entry.request_id == actor.request_id

    def test_first_product_milestone_recorded_once(self, db_session, make_product, seed_org):
        make_product("SKU-1")
        make_product("SKU-2")

        events = db_session.scalars(
            select(OrganizationEvent).where(OrganizationEvent.organization_id == seed_org.id)
        ).all()
        assert [event.type for event in events] == ["first_product_created"]

    def test_supplier_must_belong_to_tenant(self, make_product, seed_supplier):
        product = make_product("SKU-1", supplier_id=seed_supplier.id)
        assert product.supplier_id == seed_supplier.id

        with pytest.raises(NotFoundError) as exc_info:
            make_product("SKU-2", supplier_id="missing")
        assert exc_info.value.code == "supplierNotFound"

    def test_unit_of_other_tenant_rejected(self, db_session, make_product, seed_other_org):
        unit = Unit(organization_id=seed_other_org.id, code="box", label_ru="box", label_kg="box")
        db_session.add(unit)
        db_session.commit()

        with pytest.raises(NotFoundError) as exc_info:
            make_product("SKU-1", base_unit_id=unit.id)
        assert exc_info.value.code == "unitNotFound"

    def test_required_attribute_enforced_per_variant(self, make_product):
        with pytest.raises(ValidationError) as exc_info:
            make_product(
                "SKU-1",
                variants=[
                    {"name": "Small", "attributes": {"size": "S"}},
                    {"name": "Unsized", "attributes": {"color": "red"}},
                ],
            )
        assert exc_info.value.code == "attributeRequired"

    def test_number_attribute_must_be_finite(self, make_product):
        with pytest.raises(ValidationError) as exc_info:
            make_product("SKU-1", variants=[{"attributes": {"size": "S", "weight": "heavy"}}])
        assert exc_info.value.code == "attributeNumberInvalid"

    def test_plan_limit_enforced(self, db_session, make_product, seed_org):
        seed_org.max_products = 1
        db_session.commit()

        make_product("SKU-1")
        with pytest.raises(ConflictError) as exc_info:
            make_product("SKU-2")
        assert exc_info.value.code == "planLimitProducts"


class TestIdentifierUniqueness:
    def test_sku_unique_within_organization(
        self, db_session, make_product, seed_other_org, other_actor
    ):
        make_product("SKU-1")

        with pytest.raises(ConflictError) as exc_info:
            make_product("SKU-1")
        assert exc_info.value.code == "uniqueConstraintViolation"

        unit = Unit(organization_id=seed_other_org.id, code="pcs", label_ru="pcs", label_kg="pcs")
        db_session.add(unit)
        db_session.commit()
        other = ProductService(db_session).create_product(
            ProductCreate(sku="SKU-1", name="Elsewhere", base_unit_id=unit.id), other_actor
        )
        assert other.sku == "SKU-1"
        assert other.organization_id == seed_other_org.id

    def test_archived_sku_stays_reserved(self, make_product, product_service, actor):
        product = make_product("SKU-1")
        product_service.archive_product(product.id, actor)

        with pytest.raises(ConflictError) as exc_info:
            make_product("SKU-1")
        assert exc_info.value.code == "uniqueConstraintViolation"

    def test_barcode_unique_across_both_namespaces(self, make_product):
        make_product("A", barcodes=["4800000000000"])

        with pytest.raises(ConflictError) as exc_info:
            make_product("B", barcodes=["4800000000000"])
        assert exc_info.value.code == "barcodeExists"

        with pytest.raises(ConflictError) as exc_info:
            make_product(
                "C",
                packs=[{"pack_name": "Box", "pack_barcode": "4800000000000", "multiplier_to_base": 6}],
            )
        assert exc_info.value.code == "packBarcodeExists"

    def test_product_barcode_cannot_reuse_pack_barcode(self, make_product):
        make_product("A", packs=[{"pack_name": "Box", "pack_barcode": "111", "multiplier_to_base": 6}])

        with pytest.raises(ConflictError) as exc_info:
            make_product("B", barcodes=["111"])
        assert exc_info.value.code == "barcodeExists"

    def test_same_value_as_product_and_pack_barcode(self, make_product):
        with pytest.raises(ConflictError) as exc_info:
            make_product(
                "A",
                barcodes=["111"],
                packs=[{"pack_name": "Box", "pack_barcode": "111", "multiplier_to_base": 6}],
            )
        assert exc_info.value.code == "duplicateBarcode"

    def test_failed_create_writes_nothing(self, db_session, make_product, seed_org):
        make_product("A", barcodes=["4800000000000"])
        products_before = _count(db_session, Product)

        with pytest.raises(ConflictError):
            make_product("B", category="New category", barcodes=["4800000000000"])

        assert _count(db_session, Product) == products_before
        assert _count(db_session, ProductCategory, ProductCategory.name == "New category") == 0
        assert _count(db_session, InventorySnapshot) == products_before * 2

    def test_sku_constraint_backs_up_precheck(self, db_session, monkeypatch, make_product):
        make_product("SKU-1")
        counts_before = [_count(db_session, model) for model in (Product, InventorySnapshot, AuditLog)]
        monkeypatch.setattr(ProductRepository, "sku_exists", lambda self, organization_id, sku: False)

        with pytest.raises(ConflictError) as exc_info:
            make_product("SKU-1", category="New category", barcodes=["4800000000000"])
        assert exc_info.value.status_code == 409
        assert exc_info.value.code == "uniqueConstraintViolation"

        assert [_count(db_session, model) for model in (Product, InventorySnapshot, AuditLog)] == counts_before
        assert _count(db_session, ProductBarcode) == 0
        assert _count(db_session, ProductCategory, ProductCategory.name == "New category") == 0

    def test_barcode_constraint_backs_up_precheck(self, db_session, monkeypatch, make_product):
        make_product("A", barcodes=["4800000000000"])
        counts_before = [_count(db_session, model) for model in (Product, InventorySnapshot, AuditLog)]
        monkeypatch.setattr(IntegrityGuard, "ensure_barcodes_available", lambda self, *args, **kwargs: None)

        with pytest.raises(ConflictError) as exc_info:
            make_product("B", barcodes=["4800000000000"])
        assert exc_info.value.status_code == 409
        assert exc_info.value.code == "uniqueConstraintViolation"

        assert [_count(db_session, model) for model in (Product, InventorySnapshot, AuditLog)] == counts_before
        assert _count(db_session, ProductBarcode) == 1


class TestBundles:
    def test_empty_bundle_rejected(self, make_product):
        with pytest.raises(ValidationError) as exc_info:
            make_product("BUNDLE-1", is_bundle=True, bundle_components=[])
        assert exc_info.value.code == "bundleEmpty"

    def test_bundle_with_valid_component(self, make_product):
        component = make_product("SKU-1")

        bundle = make_product(
            "BUNDLE-1",
            is_bundle=True,
            bundle_components=[{"component_product_id": component.id, "qty": 3}],
        )

        assert bundle.is_bundle is True
        assert [(c.component_product_id, c.component_variant_id, c.qty) for c in bundle.bundle_components] == [
            (component.id, None, 3)
        ]

    def test_bundle_component_must_be_live(self, make_product, product_service, actor):
        component = make_product("SKU-1")
        product_service.archive_product(component.id, actor)

        with pytest.raises(NotFoundError) as exc_info:
            make_product(
                "BUNDLE-1",
                is_bundle=True,
                bundle_components=[{"component_product_id": component.id, "qty": 1}],
            )
        assert exc_info.value.code == "productNotFound"

    def test_component_variant_must_belong_to_component(self, make_product):
        first = make_product("SKU-1", variants=[{"name": "S", "attributes": {"size": "S"}}])
        second = make_product("SKU-2")

        with pytest.raises(NotFoundError) as exc_info:
            make_product(
                "BUNDLE-1",
                is_bundle=True,
                bundle_components=[
                    {
                        "component_product_id": second.id,
                        "component_variant_id": first.variants[0].id,
                        "qty": 1,
                    }
                ],
            )
        assert exc_info.value.code == "variantNotFound"

    def test_self_reference_rejected(self, make_product, product_service, actor):
        component = make_product("SKU-1")
        bundle = make_product(
            "BUNDLE-1",
            is_bundle=True,
            bundle_components=[{"component_product_id": component.id, "qty": 1}],
        )

        with pytest.raises(ValidationError) as exc_info:
            product_service.update_product(
                bundle.id,
                _update_payload(
                    bundle,
                    bundle_components=[{"component_product_id": bundle.id, "qty": 1}],
                ),
                actor,
            )
        assert exc_info.value.code == "bundleComponentInvalid"

    def test_components_cleared_when_no_longer_bundle(self, make_product, product_service, actor):
        component = make_product("SKU-1")
        bundle = make_product(
            "BUNDLE-1",
            is_bundle=True,
            bundle_components=[{"component_product_id": component.id, "qty": 1}],
        )

        updated = product_service.update_product(bundle.id, _update_payload(bundle, is_bundle=False), actor)

        assert updated.is_bundle is False
        assert updated.bundle_components == []

    def test_becoming_bundle_needs_components(self, make_product, product_service, actor):
        product = make_product("SKU-1")

        with pytest.raises(ValidationError) as exc_info:
            product_service.update_product(product.id, _update_payload(product, is_bundle=True), actor)
        assert exc_info.value.code == "bundleEmpty"

    def test_components_replaced_on_update(self, make_product, product_service, actor):
        first = make_product("SKU-1")
        second = make_product("SKU-2")
        bundle = make_product(
            "BUNDLE-1",
            is_bundle=True,
            bundle_components=[{"component_product_id": first.id, "qty": 1}],
        )

        updated = product_service.update_product(
            bundle.id,
            _update_payload(bundle, bundle_components=[{"component_product_id": second.id, "qty": 2}]),
            actor,
        )

        assert [(c.component_product_id, c.qty) for c in updated.bundle_components] == [(second.id, 2)]


class TestUpdateProduct:
    """Tests for ProductService.update_product()"""

    @pytest.fixture
    def product(self, make_product):
        return make_product(
            "SKU-1",
            category="Drinks",
            barcodes=["4800000000000"],
            packs=[{"pack_name": "Box", "pack_barcode": "111", "multiplier_to_base": 6}],
            images=[{"url": "https://img.example.com/a.jpg"}],
            variants=[
                {"name": "Small", "attributes": {"size": "S", "weight": 1}},
                {"name": "Large", "attributes": {"size": "L", "weight": 2}},
            ],
        )

    @staticmethod
    def _variants_by_name(product):
        return {variant.name: variant for variant in product.variants}

    def test_scalars_and_barcodes_replaced(self, product_service, actor, product):
        updated = product_service.update_product(
            product.id,
            _update_payload(product, name="Cola Zero", barcodes=["4800000000000", "222"]),
            actor,
        )

        assert updated.name == "Cola Zero"
        assert sorted(updated.barcodes) == ["222", "4800000000000"]

    def test_omitted_collections_untouched(self, product_service, actor, product):
        updated = product_service.update_product(product.id, _update_payload(product), actor)

        assert [pack.pack_name for pack in updated.packs] == ["Box"]
        assert [image.url for image in updated.images] == ["https://img.example.com/a.jpg"]
        assert updated.photo_url == "https://img.example.com/a.jpg"
        assert len(updated.variants) == 2

    def test_packs_replaced_when_supplied(self, product_service, actor, product):
        updated = product_service.update_product(
            product.id,
            _update_payload(product, packs=[{"pack_name": "Case", "pack_barcode": "111", "multiplier_to_base": 24}]),
            actor,
        )

        assert [(pack.pack_name, pack.pack_barcode, pack.multiplier_to_base) for pack in updated.packs] == [
            ("Case", "111", 24)
        ]

    def test_images_replaced_when_supplied(self, product_service, actor, product):
        updated = product_service.update_product(
            product.id,
            _update_payload(product, images=[{"url": "https://img.example.com/new.jpg"}]),
            actor,
        )

        assert [(image.url, image.position) for image in updated.images] == [
            ("https://img.example.com/new.jpg", 0)
        ]
        assert updated.photo_url == "https://img.example.com/new.jpg"

    def test_pack_barcode_cannot_equal_kept_product_barcode(self, product_service, actor, product):
        with pytest.raises(ConflictError) as exc_info:
            product_service.update_product(
                product.id,
                _update_payload(product, barcodes=["111"]),
                actor,
            )
        assert exc_info.value.code == "duplicateBarcode"

    def test_variant_in_use_rolls_back_whole_update(
        self, db_session, product_service, actor, product, seed_stores
    ):
        variants = self._variants_by_name(product)
        db_session.add(
            StockMovement(
                store_id=seed_stores[0].id,
                product_id=product.id,
                variant_id=variants["Small"].id,
                type="SALE",
                qty_delta=-1,
            )
        )
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            product_service.update_product(
                product.id,
                _update_payload(
                    product,
                    name="Renamed",
                    barcodes=["999"],
                    variants=[_variant_payload(variants["Large"])],
                ),
                actor,
            )
        assert exc_info.value.code == "variantInUse"

        current = product_service.get_product(product.id, actor.organization_id)
        assert current.name == product.name
        assert current.barcodes == ["4800000000000"]
        assert set(self._variants_by_name(current)) == {"Small", "Large"}

    @pytest.mark.parametrize("history", ["snapshot", "purchase_order"])
    def test_other_history_blocks_deactivation(
        self, db_session, product_service, actor, product, seed_stores, history
    ):
        small = self._variants_by_name(product)["Small"]
        if history == "snapshot":
            db_session.add(
                InventorySnapshot(
                    store_id=seed_stores[0].id,
                    product_id=product.id,
                    variant_id=small.id,
                    variant_key=small.id,
                    on_hand=5,
                )
            )
        else:
            db_session.add(
                PurchaseOrderLine(
                    purchase_order_id="po-1",
                    product_id=product.id,
                    variant_id=small.id,
                    qty_ordered=10,
                )
            )
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            product_service.update_product(
                product.id,
                _update_payload(product, variants=[_variant_payload(self._variants_by_name(product)["Large"])]),
                actor,
            )
        assert exc_info.value.code == "variantInUse"

    def test_unused_variant_deactivated(self, db_session, product_service, actor, product):
        variants = self._variants_by_name(product)

        updated = product_service.update_product(
            product.id,
            _update_payload(product, variants=[_variant_payload(variants["Large"])]),
            actor,
        )

        assert [variant.name for variant in updated.variants] == ["Large"]
        small = db_session.get(ProductVariant, variants["Small"].id)
        db_session.refresh(small)
        assert small.is_active is False
        assert _count(db_session, VariantAttributeValue, VariantAttributeValue.variant_id == small.id) == 0

    def test_attribute_values_fully_replaced(self, product_service, actor, product):
        large = self._variants_by_name(product)["Large"]

        updated = product_service.update_product(
            product.id,
            _update_payload(
                product,
                variants=[
                    _variant_payload(self._variants_by_name(product)["Small"]),
                    _variant_payload(large, attributes={"size": "XL", "color": "blue"}),
                ],
            ),
            actor,
        )

        assert self._variants_by_name(updated)["Large"].attribute_values == {"size": "XL", "color": "blue"}

    def test_new_variant_added(self, product_service, actor, product):
        variants = self._variants_by_name(product)

        updated = product_service.update_product(
            product.id,
            _update_payload(
                product,
                variants=[
                    _variant_payload(variants["Small"]),
                    _variant_payload(variants["Large"]),
                    {"name": "Medium", "attributes": {"size": "M"}},
                ],
            ),
            actor,
        )

        assert set(self._variants_by_name(updated)) == {"Small", "Large", "Medium"}

    def test_unknown_variant_id_rejected(self, product_service, actor, product):
        with pytest.raises(NotFoundError) as exc_info:
            product_service.update_product(
                product.id,
                _update_payload(product, variants=[{"id": "missing", "attributes": {"size": "S"}}]),
                actor,
            )
        assert exc_info.value.code == "variantNotFound"

    def test_unit_change_blocked_after_movement(
        self, db_session, product_service, actor, product, seed_units, seed_stores
    ):
        db_session.add(
            StockMovement(store_id=seed_stores[0].id, product_id=product.id, type="RECEIVE", qty_delta=5)
        )
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            product_service.update_product(
                product.id, _update_payload(product, base_unit_id=seed_units["kg"].id), actor
            )
        assert exc_info.value.code == "unitChangeNotAllowed"

    def test_unit_change_allowed_without_history(self, product_service, actor, product, seed_units):
        updated = product_service.update_product(
            product.id, _update_payload(product, base_unit_id=seed_units["kg"].id), actor
        )

        assert updated.base_unit_id == seed_units["kg"].id
        assert updated.unit == "kg"

    def test_sku_change_to_taken_sku(self, make_product, product_service, actor, product):
        make_product("SKU-2")

        with pytest.raises(ConflictError) as exc_info:
            product_service.update_product(product.id, _update_payload(product, sku="SKU-2"), actor)
        assert exc_info.value.code == "uniqueConstraintViolation"

    def test_barcode_of_other_product_rejected(self, make_product, product_service, actor, product):
        other = make_product("SKU-2", barcodes=["555"])

        with pytest.raises(ConflictError) as exc_info:
            product_service.update_product(other.id, _update_payload(other, barcodes=["4800000000000"]), actor)
        assert exc_info.value.code == "barcodeExists"

    def test_other_tenant_cannot_update(self, product_service, other_actor, product):
        with pytest.raises(NotFoundError) as exc_info:
            product_service.update_product(product.id, _update_payload(product), other_actor)
        assert exc_info.value.code == "productNotFound"

    def test_audit_captures_before_and_after(self, db_session, product_service, actor, product):
        product_service.update_product(product.id, _update_payload(product, name="Renamed"), actor)

        entry = db_session.scalar(
            select(AuditLog).where(AuditLog.entity_id == product.id, AuditLog.action == "PRODUCT_UPDATE")
        )
        assert json.loads(entry.before)["name"] == product.name
        assert json.loads(entry.after)["name"] == "Renamed"
        assert json.loads(entry.changes)["name"] == {"old": product.name, "new": "Renamed"}


class TestArchiveRestore:
    def test_archive_and_restore(self, db_session, product_service, actor, make_product, seed_stores):
        product = make_product("SKU-1")

        archived = product_service.archive_product(product.id, actor)
        assert archived.is_deleted is True

        db_session.execute(delete(InventorySnapshot).where(InventorySnapshot.product_id == product.id))
        db_session.commit()

        restored = product_service.restore_product(product.id, actor)
        assert restored.is_deleted is False
        assert _count(db_session, InventorySnapshot, InventorySnapshot.product_id == product.id) == len(seed_stores)

        actions = db_session.scalars(
            select(AuditLog.action).where(AuditLog.entity_id == product.id)
        ).all()
        assert sorted(actions) == ["PRODUCT_ARCHIVE", "PRODUCT_CREATE", "PRODUCT_RESTORE"]

    def test_archived_product_still_readable(self, product_service, actor, make_product):
        product = make_product("SKU-1")
        product_service.archive_product(product.id, actor)

        assert product_service.get_product(product.id, actor.organization_id).is_deleted is True
        with pytest.raises(NotFoundError):
            product_service.get_product(product.id, actor.organization_id, include_archived=False)


class TestBulkCategory:
    def test_assigns_normalized_category(self, db_session, product_service, actor, make_product):
        first = make_product("SKU-1")
        second = make_product("SKU-2")

        result = product_service.bulk_update_product_category(
            [first.id, second.id, first.id, "missing"], "  Dairy   products ", actor
        )

        assert result.updated == 2
        assert product_service.get_product(first.id, actor.organization_id).category == "Dairy products"
        assert _count(db_session, ProductCategory, ProductCategory.name == "Dairy products") == 1

    def test_empty_ids_update_nothing(self, product_service, actor):
        assert product_service.bulk_update_product_category([], "Dairy", actor).updated == 0

    def test_other_tenant_products_ignored(self, product_service, other_actor, make_product):
        product = make_product("SKU-1")

        result = product_service.bulk_update_product_category([product.id], "Dairy", other_actor)
        assert result.updated == 0
