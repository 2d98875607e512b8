"""
Inventory Domain Models
=======================
Item master (families, inventories, variants, attributes), lots, storages,
stock per location, movements and price lists.

Quantities are Numeric(18, 3) and prices Numeric(18, 3); both are handled as
Decimal in the service layer.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, SmallInteger, String, DateTime, Date, ForeignKey, Text,
    Numeric, Index, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from .db import Base
from .models import STATUS_ACTIVE


class InventoryType:
    PRODUCT = 1
    SERVICE = 2

    ALL = (PRODUCT, SERVICE)


class MovementType:
    IN = 1
    OUT = 2
    TRANSFER = 3

    ALL = (IN, OUT, TRANSFER)
    NAMES = {IN: "IN", OUT: "OUT", TRANSFER: "TRANSFER"}


# =============================================================================
# MASTER DATA
# =============================================================================

class InventoryFamily(Base):
    __tablename__ = "inventory_family"

    id_inv_family = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    inv_family_code = Column(String(20), nullable=False)
    inv_family_name = Column(String(80), nullable=False)
    inv_family_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    inv_is_stockable = Column(SmallInteger, nullable=False, default=1)
    inv_is_lot_managed = Column(SmallInteger, nullable=False, default=0)
    tax_id = Column(Integer, ForeignKey("taxes.tax_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('company_id', 'inv_family_code', name='uq_family_company_code'),
    )


class InventoryStorage(Base):
    """Warehouse, shelf or any location that holds stock"""
    __tablename__ = "inventory_storage"

    id_inv_storage = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    inv_storage_code = Column(String(20), nullable=False)
    inv_storage_name = Column(String(80), nullable=False)
    inv_storage_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('company_id', 'inv_storage_code', name='uq_storage_company_code'),
    )


class InventoryAttribute(Base):
    __tablename__ = "inventory_attrs"

    inv_attr_id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    attr_name = Column(String(50), nullable=False)
    attr_description = Column(String(150), nullable=True)
    attr_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    values = relationship(
        "InventoryAttributeValue", back_populates="attribute",
        cascade="all, delete-orphan", order_by="InventoryAttributeValue.inv_attrval_id"
    )

    __table_args__ = (
        UniqueConstraint('company_id', 'attr_name', name='uq_attr_company_name'),
    )


class InventoryAttributeValue(Base):
    __tablename__ = "inventory_attrs_values"

    inv_attrval_id = Column(Integer, primary_key=True, index=True)
    inv_attr_id = Column(Integer, ForeignKey("inventory_attrs.inv_attr_id", ondelete="CASCADE"), nullable=False)
    attr_value = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    attribute = relationship("InventoryAttribute", back_populates="values")

    __table_args__ = (
        UniqueConstraint('inv_attr_id', 'attr_value', name='uq_attr_value'),
    )


class Inventory(Base):
    """Item master: a product or service a company sells or stocks"""
    __tablename__ = "inventory"

    inv_id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    id_inv_family = Column(Integer, ForeignKey("inventory_family.id_inv_family"), nullable=False)
    inv_code = Column(String(50), nullable=False)
    inv_description = Column(String(150), nullable=False)
    inv_description_detail = Column(Text, nullable=True)
    inv_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    inv_type = Column(SmallInteger, nullable=False, default=InventoryType.PRODUCT)
    inv_is_exempt = Column(SmallInteger, nullable=False, default=0)
    inv_brand = Column(String(50), nullable=True)
    inv_model = Column(String(50), nullable=True)
    inv_current_existence = Column(Numeric(18, 3), nullable=False, default=0)
    inv_previous_existence = Column(Numeric(18, 3), nullable=False, default=0)
    inv_url_image = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    family = relationship("InventoryFamily")
    variants = relationship(
        "InventoryVariant", back_populates="inventory",
        order_by="InventoryVariant.inv_var_id"
    )
    taxes = relationship("Tax", secondary="inventory_taxes")

    __table_args__ = (
        UniqueConstraint('company_id', 'inv_code', name='uq_inventory_company_code'),
    )


class InventoryTax(Base):
    __tablename__ = "inventory_taxes"

    inv_tax_id = Column(Integer, primary_key=True, index=True)
    inv_id = Column(Integer, ForeignKey("inventory.inv_id", ondelete="CASCADE"), nullable=False)
    tax_id = Column(Integer, ForeignKey("taxes.tax_id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('inv_id', 'tax_id', name='uq_inventory_tax'),
    )


class InventoryVariant(Base):
    """SKU-level instance of an inventory item"""
    __tablename__ = "inventory_variants"

    inv_var_id = Column(Integer, primary_key=True, index=True)
    inv_id = Column(Integer, ForeignKey("inventory.inv_id", ondelete="CASCADE"), nullable=False, index=True)
    inv_var_sku = Column(String(100), nullable=False)
    inv_var_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    inventory = relationship("Inventory", back_populates="variants")
    attr_values = relationship("InventoryAttributeValue", secondary="inventory_variants_attrs")

    __table_args__ = (
        UniqueConstraint('inv_id', 'inv_var_sku', name='uq_variant_inventory_sku'),
    )


class InventoryVariantAttribute(Base):
    __tablename__ = "inventory_variants_attrs"

    inv_varattr_id = Column(Integer, primary_key=True, index=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id", ondelete="CASCADE"), nullable=False)
    inv_attrval_id = Column(Integer, ForeignKey("inventory_attrs_values.inv_attrval_id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('inv_var_id', 'inv_attrval_id', name='uq_variant_attr_value'),
    )


# =============================================================================
# LOTS
# =============================================================================

class InventoryLot(Base):
    """A tracked batch of a variant"""
    __tablename__ = "inventory_lots"

    inv_lot_id = Column(Integer, primary_key=True, index=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id"), nullable=False, index=True)
    lot_number = Column(String(100), nullable=False)
    lot_origin = Column(String(100), nullable=True)
    lot_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    expiration_date = Column(Date, nullable=True)
    manufacture_date = Column(Date, nullable=True)
    lot_notes = Column(Text, nullable=True)
    lot_unit_cost = Column(Numeric(18, 3), nullable=True)
    lot_unit_currency_id = Column(Integer, ForeignKey("currencies.currency_id"), nullable=True)
    lot_unit_cost_ref = Column(Numeric(18, 3), nullable=True)
    lot_unit_currency_id_ref = Column(Integer, ForeignKey("currencies.currency_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    variant = relationship("InventoryVariant")

    __table_args__ = (
        UniqueConstraint('inv_var_id', 'lot_number', name='uq_lot_variant_number'),
        Index('ix_lot_number', 'lot_number'),
    )


# =============================================================================
# STOCK PER LOCATION
# =============================================================================

class InventoryVariantStorage(Base):
    __tablename__ = "inventory_variant_storages"

    inv_var_storage_id = Column(Integer, primary_key=True, index=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id"), nullable=False)
    id_inv_storage = Column(Integer, ForeignKey("inventory_storage.id_inv_storage"), nullable=False)
    inv_vs_stock = Column(Numeric(18, 3), nullable=False, default=0)
    inv_vs_stock_reserved = Column(Numeric(18, 3), nullable=False, default=0)
    inv_vs_stock_committed = Column(Numeric(18, 3), nullable=False, default=0)
    inv_vs_stock_prev = Column(Numeric(18, 3), nullable=False, default=0)
    inv_vs_stock_min = Column(Numeric(18, 3), nullable=False, default=0)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    variant = relationship("InventoryVariant")
    storage = relationship("InventoryStorage")

    __table_args__ = (
        UniqueConstraint('inv_var_id', 'id_inv_storage', name='uq_variant_storage'),
        CheckConstraint('inv_vs_stock >= 0', name='ck_variant_storage_stock_positive'),
    )


class InventoryLotStorage(Base):
    __tablename__ = "inventory_lots_storages"

    inv_lot_storage_id = Column(Integer, primary_key=True, index=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id"), nullable=False)
    inv_lot_id = Column(Integer, ForeignKey("inventory_lots.inv_lot_id"), nullable=False)
    id_inv_storage = Column(Integer, ForeignKey("inventory_storage.id_inv_storage"), nullable=False)
    inv_ls_stock = Column(Numeric(18, 3), nullable=False, default=0)
    inv_ls_stock_reserved = Column(Numeric(18, 3), nullable=False, default=0)
    inv_ls_stock_committed = Column(Numeric(18, 3), nullable=False, default=0)
    inv_ls_stock_prev = Column(Numeric(18, 3), nullable=False, default=0)
    inv_ls_stock_min = Column(Numeric(18, 3), nullable=False, default=0)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lot = relationship("InventoryLot")
    storage = relationship("InventoryStorage")

    __table_args__ = (
        UniqueConstraint('inv_lot_id', 'id_inv_storage', name='uq_lot_storage'),
        CheckConstraint('inv_ls_stock >= 0', name='ck_lot_storage_stock_positive'),
    )


class InventoryMovement(Base):
    """
    Immutable record of a stock change.
    Only the reason and the related document can be corrected afterwards.
    """
    __tablename__ = "inventory_movements"

    inv_storage_move_id = Column(Integer, primary_key=True, index=True)
    id_inv_storage = Column(Integer, ForeignKey("inventory_storage.id_inv_storage"), nullable=False, index=True)
    id_inv_storage_to = Column(Integer, ForeignKey("inventory_storage.id_inv_storage"), nullable=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id"), nullable=False, index=True)
    inv_lot_id = Column(Integer, ForeignKey("inventory_lots.inv_lot_id"), nullable=True)
    movement_type = Column(SmallInteger, nullable=False)
    quantity = Column(Numeric(18, 3), nullable=False)
    movement_reason = Column(String(255), nullable=True)
    related_doc = Column(String(100), nullable=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_movement_quantity_positive'),
        Index('ix_movement_lot', 'inv_lot_id'),
        Index('ix_movement_type_date', 'movement_type', 'created_at'),
        Index('ix_movement_user_doc', 'user_id', 'related_doc'),
    )


# =============================================================================
# PRICE LISTS
# =============================================================================

class TypeOfPrice(Base):
    __tablename__ = "types_of_prices"

    typeprice_id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False, index=True)
    typeprice_name = Column(String(50), nullable=False)
    typeprice_description = Column(String(150), nullable=True)
    typeprice_status = Column(SmallInteger, nullable=False, default=STATUS_ACTIVE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('company_id', 'typeprice_name', name='uq_typeprice_company_name'),
    )


# Amount columns shared by prices and their history
PRICE_AMOUNT_FIELDS = [
    f"{amount}_{currency}"
    for amount in ("price", "price_base", "tax_amount", "cost", "cost_avg", "profit")
    for currency in ("local", "stable", "ref")
]
PRICE_CURRENCY_FIELDS = ["currency_id_local", "currency_id_stable", "currency_id_ref"]


class InventoryPrice(Base):
    """
    Price of a variant for one type of price.

    A variant can keep several prices per type over time; at most one of
    them has ``is_current = 1``.
    """
    __tablename__ = "inventory_prices"

    inv_price_id = Column(Integer, primary_key=True, index=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id"), nullable=False)
    typeprice_id = Column(Integer, ForeignKey("types_of_prices.typeprice_id"), nullable=False)
    is_current = Column(SmallInteger, nullable=False, default=0)

    price_local = Column(Numeric(18, 3), nullable=False, default=0)
    price_stable = Column(Numeric(18, 3), nullable=False, default=0)
    price_ref = Column(Numeric(18, 3), nullable=False, default=0)
    price_base_local = Column(Numeric(18, 3), nullable=False, default=0)
    price_base_stable = Column(Numeric(18, 3), nullable=False, default=0)
    price_base_ref = Column(Numeric(18, 3), nullable=False, default=0)
    tax_amount_local = Column(Numeric(18, 3), nullable=False, default=0)
    tax_amount_stable = Column(Numeric(18, 3), nullable=False, default=0)
    tax_amount_ref = Column(Numeric(18, 3), nullable=False, default=0)
    cost_local = Column(Numeric(18, 3), nullable=False, default=0)
    cost_stable = Column(Numeric(18, 3), nullable=False, default=0)
    cost_ref = Column(Numeric(18, 3), nullable=False, default=0)
    cost_avg_local = Column(Numeric(18, 3), nullable=False, default=0)
    cost_avg_stable = Column(Numeric(18, 3), nullable=False, default=0)
    cost_avg_ref = Column(Numeric(18, 3), nullable=False, default=0)
    profit_local = Column(Numeric(18, 3), nullable=False, default=0)
    profit_stable = Column(Numeric(18, 3), nullable=False, default=0)
    profit_ref = Column(Numeric(18, 3), nullable=False, default=0)

    currency_id_local = Column(Integer, ForeignKey("currencies.currency_id"), nullable=True)
    currency_id_stable = Column(Integer, ForeignKey("currencies.currency_id"), nullable=True)
    currency_id_ref = Column(Integer, ForeignKey("currencies.currency_id"), nullable=True)

    valid_from = Column(DateTime, nullable=False, default=datetime.utcnow)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    type_of_price = relationship("TypeOfPrice")

    __table_args__ = (
        Index('ix_price_variant_type', 'inv_var_id', 'typeprice_id'),
        Index('ix_price_variant_current', 'inv_var_id', 'is_current'),
    )


class InventoryPriceHistory(Base):
    """State of a price before each change"""
    __tablename__ = "inventory_prices_history"

    inv_price_history_id = Column(Integer, primary_key=True, index=True)
    inv_price_id = Column(Integer, ForeignKey("inventory_prices.inv_price_id"), nullable=False, index=True)
    inv_var_id = Column(Integer, ForeignKey("inventory_variants.inv_var_id"), nullable=False)
    typeprice_id = Column(Integer, ForeignKey("types_of_prices.typeprice_id"), nullable=False)
    is_current = Column(SmallInteger, nullable=False, default=0)

    price_local = Column(Numeric(18, 3), nullable=False, default=0)
    price_stable = Column(Numeric(18, 3), nullable=False, default=0)
    price_ref = Column(Numeric(18, 3), nullable=False, default=0)
    price_base_local = Column(Numeric(18, 3), nullable=False, default=0)
    price_base_stable = Column(Numeric(18, 3), nullable=False, default=0)
    price_base_ref = Column(Numeric(18, 3), nullable=False, default=0)
    tax_amount_local = Column(Numeric(18, 3), nullable=False, default=0)
    tax_amount_stable = Column(Numeric(18, 3), nullable=False, default=0)
    tax_amount_ref = Column(Numeric(18, 3), nullable=False, default=0)
    cost_local = Column(Numeric(18, 3), nullable=False, default=0)
    cost_stable = Column(Numeric(18, 3), nullable=False, default=0)
    cost_ref = Column(Numeric(18, 3), nullable=False, default=0)
    cost_avg_local = Column(Numeric(18, 3), nullable=False, default=0)
    cost_avg_stable = Column(Numeric(18, 3), nullable=False, default=0)
    cost_avg_ref = Column(Numeric(18, 3), nullable=False, default=0)
    profit_local = Column(Numeric(18, 3), nullable=False, default=0)
    profit_stable = Column(Numeric(18, 3), nullable=False, default=0)
    profit_ref = Column(Numeric(18, 3), nullable=False, default=0)

    currency_id_local = Column(Integer, nullable=True)
    currency_id_stable = Column(Integer, nullable=True)
    currency_id_ref = Column(Integer, nullable=True)

    valid_from = Column(DateTime, nullable=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
