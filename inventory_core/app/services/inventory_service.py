"""
Inventory Catalog Service
=========================
Families, storages, attributes, inventories and their variants.

Every lookup is scoped to the acting company; rows of another company
are reported as not found.
"""

import logging
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ..models_inventory import (
    InventoryFamily, InventoryStorage, InventoryAttribute, InventoryAttributeValue,
    Inventory, InventoryVariant, InventoryType
)
from ..models import STATUS_ACTIVE
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, paginate, apply_changes, drop_required_nulls
)
from .tax_service import TaxService

logger = logging.getLogger(__name__)


# =============================================================================
# FAMILIES
# =============================================================================

class FamilyService:

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE):
        query = db.query(InventoryFamily).filter(InventoryFamily.company_id == company_id)
        if status is not None:
            query = query.filter(InventoryFamily.inv_family_status == status)
        return paginate(query.order_by(InventoryFamily.inv_family_code), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, family_id: int) -> InventoryFamily:
        family = db.query(InventoryFamily).filter(
            InventoryFamily.id_inv_family == family_id,
            InventoryFamily.company_id == company_id
        ).first()
        if not family:
            raise NotFoundError("Inventory family not found")
        return family

    @staticmethod
    def _check_code(db: Session, company_id: int, code: str, exclude_id: Optional[int] = None):
        query = db.query(InventoryFamily).filter(
            InventoryFamily.company_id == company_id,
            InventoryFamily.inv_family_code == code
        )
        if exclude_id is not None:
            query = query.filter(InventoryFamily.id_inv_family != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Inventory family with code '{code}' already exists")

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> InventoryFamily:
        FamilyService._check_code(db, company_id, data["inv_family_code"])
        if data.get("tax_id") is not None:
            TaxService.get(db, company_id, data["tax_id"])

        family = InventoryFamily(company_id=company_id, **data)
        db.add(family)
        db.flush()
        return family

    @staticmethod
    def update(db: Session, company_id: int, family_id: int, data: dict) -> InventoryFamily:
        family = FamilyService.get(db, company_id, family_id)
        data = drop_required_nulls(InventoryFamily, data)
        if data.get("inv_family_code") and data["inv_family_code"] != family.inv_family_code:
            FamilyService._check_code(db, company_id, data["inv_family_code"], exclude_id=family_id)
        if data.get("tax_id") is not None:
            TaxService.get(db, company_id, data["tax_id"])
        apply_changes(family, data)
        db.flush()
        return family


# =============================================================================
# STORAGES
# =============================================================================

class StorageService:

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE):
        query = db.query(InventoryStorage).filter(InventoryStorage.company_id == company_id)
        if status is not None:
            query = query.filter(InventoryStorage.inv_storage_status == status)
        return paginate(query.order_by(InventoryStorage.inv_storage_code), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, storage_id: int) -> InventoryStorage:
        storage = db.query(InventoryStorage).filter(
            InventoryStorage.id_inv_storage == storage_id,
            InventoryStorage.company_id == company_id
        ).first()
        if not storage:
            raise NotFoundError("Storage not found")
        return storage

    @staticmethod
    def _check_code(db: Session, company_id: int, code: str, exclude_id: Optional[int] = None):
        query = db.query(InventoryStorage).filter(
            InventoryStorage.company_id == company_id,
            InventoryStorage.inv_storage_code == code
        )
        if exclude_id is not None:
            query = query.filter(InventoryStorage.id_inv_storage != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Storage with code '{code}' already exists")

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> InventoryStorage:
        StorageService._check_code(db, company_id, data["inv_storage_code"])
        storage = InventoryStorage(company_id=company_id, **data)
        db.add(storage)
        db.flush()
        return storage

    @staticmethod
    def update(db: Session, company_id: int, storage_id: int, data: dict) -> InventoryStorage:
        storage = StorageService.get(db, company_id, storage_id)
        data = drop_required_nulls(InventoryStorage, data)
        if data.get("inv_storage_code") and data["inv_storage_code"] != storage.inv_storage_code:
            StorageService._check_code(db, company_id, data["inv_storage_code"], exclude_id=storage_id)
        apply_changes(storage, data)
        db.flush()
        return storage


# =============================================================================
# ATTRIBUTES
# =============================================================================

class AttributeService:

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE):
        query = db.query(InventoryAttribute).options(
            selectinload(InventoryAttribute.values)
        ).filter(InventoryAttribute.company_id == company_id)
        if status is not None:
            query = query.filter(InventoryAttribute.attr_status == status)
        return paginate(query.order_by(InventoryAttribute.attr_name), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, attr_id: int) -> InventoryAttribute:
        attribute = db.query(InventoryAttribute).filter(
            InventoryAttribute.inv_attr_id == attr_id,
            InventoryAttribute.company_id == company_id
        ).first()
        if not attribute:
            raise NotFoundError("Attribute not found")
        return attribute

    @staticmethod
    def _check_name(db: Session, company_id: int, name: str, exclude_id: Optional[int] = None):
        query = db.query(InventoryAttribute).filter(
            InventoryAttribute.company_id == company_id,
            InventoryAttribute.attr_name == name
        )
        if exclude_id is not None:
            query = query.filter(InventoryAttribute.inv_attr_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Attribute '{name}' already exists")

    @staticmethod
    def _add_values(attribute: InventoryAttribute, values: List[str]):
        existing = {v.attr_value.lower() for v in attribute.values}
        for raw in values:
            value = raw.strip()
            if value and value.lower() not in existing:
                attribute.values.append(InventoryAttributeValue(attr_value=value))
                existing.add(value.lower())

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> InventoryAttribute:
        values = data.pop("attr_values", None) or []
        AttributeService._check_name(db, company_id, data["attr_name"])

        attribute = InventoryAttribute(company_id=company_id, **data)
        AttributeService._add_values(attribute, values)
        db.add(attribute)
        db.flush()
        return attribute

    @staticmethod
    def update(db: Session, company_id: int, attr_id: int, data: dict) -> InventoryAttribute:
        attribute = AttributeService.get(db, company_id, attr_id)
        data = drop_required_nulls(InventoryAttribute, data)
        values = data.pop("attr_values", None) or []
        if data.get("attr_name") and data["attr_name"] != attribute.attr_name:
            AttributeService._check_name(db, company_id, data["attr_name"], exclude_id=attr_id)
        apply_changes(attribute, data)
        AttributeService._add_values(attribute, values)
        db.flush()
        return attribute

    @staticmethod
    def get_values(db: Session, company_id: int, value_ids: List[int]) -> List[InventoryAttributeValue]:
        """Attribute values owned by the company, or NotFoundError naming the missing ids"""
        if not value_ids:
            return []
        unique_ids = set(value_ids)
        values = db.query(InventoryAttributeValue).join(
            InventoryAttribute, InventoryAttributeValue.inv_attr_id == InventoryAttribute.inv_attr_id
        ).filter(
            InventoryAttribute.company_id == company_id,
            InventoryAttributeValue.inv_attrval_id.in_(unique_ids)
        ).all()
        missing = unique_ids - {v.inv_attrval_id for v in values}
        if missing:
            raise NotFoundError(f"Attribute values not found: {sorted(missing)}")
        return values


# =============================================================================
# INVENTORY & VARIANTS
# =============================================================================

class InventoryService:

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int,
             status: Optional[int] = STATUS_ACTIVE, family_id: Optional[int] = None,
             search: Optional[str] = None):
        query = db.query(Inventory).filter(Inventory.company_id == company_id)
        if status is not None:
            query = query.filter(Inventory.inv_status == status)
        if family_id:
            query = query.filter(Inventory.id_inv_family == family_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                (Inventory.inv_code.ilike(pattern)) |
                (Inventory.inv_description.ilike(pattern))
            )
        return paginate(query.order_by(Inventory.inv_code), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, inv_id: int) -> Inventory:
        inventory = db.query(Inventory).options(
            selectinload(Inventory.variants).selectinload(InventoryVariant.attr_values),
            selectinload(Inventory.taxes),
        ).filter(
            Inventory.inv_id == inv_id,
            Inventory.company_id == company_id
        ).first()
        if not inventory:
            raise NotFoundError("Inventory not found")
        return inventory

    @staticmethod
    def _check_code(db: Session, company_id: int, code: str, exclude_id: Optional[int] = None):
        query = db.query(Inventory).filter(Inventory.company_id == company_id, Inventory.inv_code == code)
        if exclude_id is not None:
            query = query.filter(Inventory.inv_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Inventory with code '{code}' already exists")

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> Inventory:
        """
        Create an inventory item with its taxes and variants in one go.

        Without explicit variants a default one is created whose SKU is the
        inventory code, so prices, lots and stock always hang off a variant.
        """
        tax_ids = data.pop("taxes", None) or []
        variants = data.pop("variants", None) or []

        family = FamilyService.get(db, company_id, data["id_inv_family"])
        InventoryService._check_code(db, company_id, data["inv_code"])

        skus = [v["inv_var_sku"].strip() for v in variants]
        if len(skus) != len({s.lower() for s in skus}):
            raise InvalidOperationError("Variant SKUs must be unique within the inventory")

        inventory = Inventory(company_id=company_id, **data)
        if tax_ids:
            inventory.taxes = TaxService.get_many(db, company_id, tax_ids)
        elif family.tax_id is not None:
            inventory.taxes = [TaxService.get(db, company_id, family.tax_id)]

        if not variants:
            variants = [{"inv_var_sku": inventory.inv_code, "inv_var_status": STATUS_ACTIVE}]

        for entry in variants:
            variant = InventoryVariant(
                inv_var_sku=entry["inv_var_sku"].strip(),
                inv_var_status=entry.get("inv_var_status", STATUS_ACTIVE),
            )
            variant.attr_values = AttributeService.get_values(db, company_id, entry.get("attr_values") or [])
            inventory.variants.append(variant)

        db.add(inventory)
        db.flush()
        logger.info(
            "Created inventory %s for company %s with %d variant(s)",
            inventory.inv_code, company_id, len(inventory.variants)
        )
        return inventory

    @staticmethod
    def update(db: Session, company_id: int, inv_id: int, data: dict) -> Inventory:
        inventory = InventoryService.get(db, company_id, inv_id)
        data = drop_required_nulls(Inventory, data)
        tax_ids = data.pop("taxes", None)

        if data.get("inv_code") and data["inv_code"] != inventory.inv_code:
            InventoryService._check_code(db, company_id, data["inv_code"], exclude_id=inv_id)
        if data.get("id_inv_family") is not None:
            FamilyService.get(db, company_id, data["id_inv_family"])
        if data.get("inv_type") is not None and data["inv_type"] not in InventoryType.ALL:
            raise InvalidOperationError("Invalid inventory type")

        apply_changes(inventory, data)
        if tax_ids is not None:
            inventory.taxes = TaxService.get_many(db, company_id, tax_ids) if tax_ids else []
        db.flush()
        return inventory

    @staticmethod
    def is_stockable(inventory: Inventory) -> bool:
        return inventory.inv_type == InventoryType.PRODUCT and bool(inventory.family.inv_is_stockable)

    @staticmethod
    def is_lot_managed(inventory: Inventory) -> bool:
        return bool(inventory.family.inv_is_lot_managed)


class VariantService:

    @staticmethod
    def get(db: Session, company_id: int, inv_var_id: int) -> InventoryVariant:
        variant = db.query(InventoryVariant).join(
            Inventory, InventoryVariant.inv_id == Inventory.inv_id
        ).filter(
            InventoryVariant.inv_var_id == inv_var_id,
            Inventory.company_id == company_id
        ).first()
        if not variant:
            raise NotFoundError("Inventory variant not found")
        return variant

    @staticmethod
    def list_by_inventory(db: Session, company_id: int, inv_id: int,
                          status: Optional[int] = None) -> List[InventoryVariant]:
        InventoryService.get(db, company_id, inv_id)
        query = db.query(InventoryVariant).options(
            selectinload(InventoryVariant.attr_values)
        ).filter(InventoryVariant.inv_id == inv_id)
        if status is not None:
            query = query.filter(InventoryVariant.inv_var_status == status)
        return query.order_by(InventoryVariant.inv_var_id).all()

    @staticmethod
    def _check_sku(db: Session, inv_id: int, sku: str, exclude_id: Optional[int] = None):
        # SKUs compare case-insensitively, as within a create batch
        query = db.query(InventoryVariant).filter(
            InventoryVariant.inv_id == inv_id,
            func.lower(InventoryVariant.inv_var_sku) == sku.lower()
        )
        if exclude_id is not None:
            query = query.filter(InventoryVariant.inv_var_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Variant with SKU '{sku}' already exists for this inventory")

    @staticmethod
    def create(db: Session, company_id: int, inv_id: int, data: dict) -> InventoryVariant:
        inventory = InventoryService.get(db, company_id, inv_id)
        sku = data["inv_var_sku"].strip()
        VariantService._check_sku(db, inv_id, sku)

        variant = InventoryVariant(
            inv_id=inventory.inv_id,
            inv_var_sku=sku,
            inv_var_status=data.get("inv_var_status", STATUS_ACTIVE),
        )
        variant.attr_values = AttributeService.get_values(db, company_id, data.get("attr_values") or [])
        db.add(variant)
        db.flush()
        return variant

    @staticmethod
    def update(db: Session, company_id: int, inv_var_id: int, data: dict) -> InventoryVariant:
        variant = VariantService.get(db, company_id, inv_var_id)
        data = drop_required_nulls(InventoryVariant, data)
        value_ids = data.pop("attr_values", None) or []

        if data.get("inv_var_sku"):
            data["inv_var_sku"] = data["inv_var_sku"].strip()
            if data["inv_var_sku"] != variant.inv_var_sku:
                VariantService._check_sku(db, variant.inv_id, data["inv_var_sku"], exclude_id=inv_var_id)

        apply_changes(variant, data)
        current = {v.inv_attrval_id for v in variant.attr_values}
        for value in AttributeService.get_values(db, company_id, value_ids):
            if value.inv_attrval_id not in current:
                variant.attr_values.append(value)
        db.flush()
        return variant
