"""
Price List Service
==================
Types of prices and variant prices.

A variant may hold several prices for the same type of price (older and
newer price lists), but at most one of them is current. Every path that
marks a price current first clears the flag on its siblings, inside the
caller's transaction.
"""

import logging
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.orm import Session

from ..models_inventory import (
    TypeOfPrice, InventoryPrice, InventoryPriceHistory,
    PRICE_AMOUNT_FIELDS, PRICE_CURRENCY_FIELDS
)
from ..models import STATUS_ACTIVE
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, paginate, apply_changes, drop_required_nulls
)
from .currency_service import CurrencyService
from .inventory_service import VariantService

logger = logging.getLogger(__name__)


class TypeOfPriceService:

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int, status: Optional[int] = STATUS_ACTIVE):
        query = db.query(TypeOfPrice).filter(TypeOfPrice.company_id == company_id)
        if status is not None:
            query = query.filter(TypeOfPrice.typeprice_status == status)
        return paginate(query.order_by(TypeOfPrice.typeprice_name), page, limit)

    @staticmethod
    def get(db: Session, company_id: int, typeprice_id: int) -> TypeOfPrice:
        type_of_price = db.query(TypeOfPrice).filter(
            TypeOfPrice.typeprice_id == typeprice_id,
            TypeOfPrice.company_id == company_id
        ).first()
        if not type_of_price:
            raise NotFoundError("Type of price not found")
        return type_of_price

    @staticmethod
    def _check_name(db: Session, company_id: int, name: str, exclude_id: Optional[int] = None):
        query = db.query(TypeOfPrice).filter(
            TypeOfPrice.company_id == company_id,
            TypeOfPrice.typeprice_name == name
        )
        if exclude_id is not None:
            query = query.filter(TypeOfPrice.typeprice_id != exclude_id)
        if query.first():
            raise AlreadyExistsError(f"Type of price '{name}' already exists")

    @staticmethod
    def create(db: Session, company_id: int, data: dict) -> TypeOfPrice:
        TypeOfPriceService._check_name(db, company_id, data["typeprice_name"])
        type_of_price = TypeOfPrice(company_id=company_id, **data)
        db.add(type_of_price)
        db.flush()
        return type_of_price

    @staticmethod
    def update(db: Session, company_id: int, typeprice_id: int, data: dict) -> TypeOfPrice:
        type_of_price = TypeOfPriceService.get(db, company_id, typeprice_id)
        data = drop_required_nulls(TypeOfPrice, data)
        if data.get("typeprice_name") and data["typeprice_name"] != type_of_price.typeprice_name:
            TypeOfPriceService._check_name(db, company_id, data["typeprice_name"], exclude_id=typeprice_id)
        apply_changes(type_of_price, data)
        db.flush()
        return type_of_price

    @staticmethod
    def delete(db: Session, company_id: int, typeprice_id: int):
        type_of_price = TypeOfPriceService.get(db, company_id, typeprice_id)
        in_use = db.query(InventoryPrice.inv_price_id).filter(
            InventoryPrice.typeprice_id == typeprice_id
        ).first()
        if in_use:
            raise InvalidOperationError("Type of price is used by inventory prices; deactivate it instead")
        db.delete(type_of_price)
        db.flush()


class PriceService:

    @staticmethod
    def _snapshot(db: Session, price: InventoryPrice, user_id: Optional[int]):
        values = {field: getattr(price, field) for field in PRICE_AMOUNT_FIELDS + PRICE_CURRENCY_FIELDS}
        db.add(InventoryPriceHistory(
            inv_price_id=price.inv_price_id,
            inv_var_id=price.inv_var_id,
            typeprice_id=price.typeprice_id,
            is_current=price.is_current,
            valid_from=price.valid_from,
            user_id=user_id,
            **values
        ))

    @staticmethod
    def _validate_amounts(data: dict):
        for field in PRICE_AMOUNT_FIELDS:
            if field.startswith("profit_"):
                continue
            value = data.get(field)
            if value is not None and Decimal(str(value)) < 0:
                raise InvalidOperationError(f"{field} cannot be negative")

    @staticmethod
    def _unset_current(db: Session, inv_var_id: int, typeprice_id: int, exclude_id: Optional[int] = None) -> int:
        query = db.query(InventoryPrice).filter(
            InventoryPrice.inv_var_id == inv_var_id,
            InventoryPrice.typeprice_id == typeprice_id,
            InventoryPrice.is_current == 1,
        )
        if exclude_id is not None:
            query = query.filter(InventoryPrice.inv_price_id != exclude_id)
        cleared = query.update({InventoryPrice.is_current: 0}, synchronize_session="fetch")
        if cleared:
            logger.info(
                "Cleared %d current price(s) for variant %s / type %s",
                cleared, inv_var_id, typeprice_id
            )
        return cleared

    @staticmethod
    def get(db: Session, company_id: int, inv_price_id: int) -> InventoryPrice:
        price = db.get(InventoryPrice, inv_price_id)
        if not price:
            raise NotFoundError("Inventory price not found")
        # Ownership goes through the variant's inventory
        VariantService.get(db, company_id, price.inv_var_id)
        return price

    @staticmethod
    def list_by_variant(db: Session, company_id: int, inv_var_id: int, page: int, limit: int):
        VariantService.get(db, company_id, inv_var_id)
        query = db.query(InventoryPrice).filter(
            InventoryPrice.inv_var_id == inv_var_id
        ).order_by(InventoryPrice.valid_from.desc(), InventoryPrice.inv_price_id.desc())
        return paginate(query, page, limit)

    @staticmethod
    def current_by_variant(db: Session, company_id: int, inv_var_id: int) -> List[InventoryPrice]:
        VariantService.get(db, company_id, inv_var_id)
        return db.query(InventoryPrice).filter(
            InventoryPrice.inv_var_id == inv_var_id,
            InventoryPrice.is_current == 1
        ).order_by(InventoryPrice.typeprice_id).all()

    @staticmethod
    def by_variant_and_type(db: Session, company_id: int, inv_var_id: int, typeprice_id: int) -> List[InventoryPrice]:
        VariantService.get(db, company_id, inv_var_id)
        TypeOfPriceService.get(db, company_id, typeprice_id)
        return db.query(InventoryPrice).filter(
            InventoryPrice.inv_var_id == inv_var_id,
            InventoryPrice.typeprice_id == typeprice_id
        ).order_by(
            InventoryPrice.is_current.desc(),
            InventoryPrice.valid_from.desc(),
            InventoryPrice.inv_price_id.desc()
        ).all()

    @staticmethod
    def history_by_variant(db: Session, company_id: int, inv_var_id: int, page: int, limit: int,
                           typeprice_id: Optional[int] = None):
        VariantService.get(db, company_id, inv_var_id)
        query = db.query(InventoryPriceHistory).filter(InventoryPriceHistory.inv_var_id == inv_var_id)
        if typeprice_id:
            query = query.filter(InventoryPriceHistory.typeprice_id == typeprice_id)
        query = query.order_by(
            InventoryPriceHistory.created_at.desc(),
            InventoryPriceHistory.inv_price_history_id.desc()
        )
        return paginate(query, page, limit)

    @staticmethod
    def create(db: Session, company_id: int, data: dict, user_id: Optional[int] = None) -> InventoryPrice:
        VariantService.get(db, company_id, data["inv_var_id"])
        TypeOfPriceService.get(db, company_id, data["typeprice_id"])
        PriceService._validate_amounts(data)
        CurrencyService.ensure_exists(db, *(data.get(f) for f in PRICE_CURRENCY_FIELDS))

        if data.get("currency_id_stable") is None:
            data["currency_id_stable"] = data.get("currency_id_ref") or data.get("currency_id_local")
        if data.get("valid_from") is None:
            data.pop("valid_from", None)

        if data.get("is_current") == 1:
            PriceService._unset_current(db, data["inv_var_id"], data["typeprice_id"])

        price = InventoryPrice(user_id=user_id, **data)
        db.add(price)
        db.flush()
        logger.info(
            "Created price %s for variant %s / type %s (current=%s)",
            price.inv_price_id, price.inv_var_id, price.typeprice_id, price.is_current
        )
        return price

    @staticmethod
    def update(db: Session, company_id: int, inv_price_id: int, data: dict,
               user_id: Optional[int] = None) -> InventoryPrice:
        price = PriceService.get(db, company_id, inv_price_id)
        data = drop_required_nulls(InventoryPrice, data)

        if data.get("typeprice_id") is not None and data["typeprice_id"] != price.typeprice_id:
            TypeOfPriceService.get(db, company_id, data["typeprice_id"])
        PriceService._validate_amounts(data)
        CurrencyService.ensure_exists(db, *(data.get(f) for f in PRICE_CURRENCY_FIELDS))

        PriceService._snapshot(db, price, user_id)

        typeprice_id = data.get("typeprice_id", price.typeprice_id)
        is_current = data.get("is_current", price.is_current)
        if is_current == 1:
            PriceService._unset_current(db, price.inv_var_id, typeprice_id, exclude_id=inv_price_id)

        if data.get("valid_from") is None:
            data.pop("valid_from", None)
        apply_changes(price, data)
        price.user_id = user_id
        db.flush()
        return price

    @staticmethod
    def set_current(db: Session, company_id: int, inv_price_id: int, user_id: Optional[int] = None) -> InventoryPrice:
        price = PriceService.get(db, company_id, inv_price_id)
        if price.is_current == 1:
            return price

        PriceService._snapshot(db, price, user_id)
        PriceService._unset_current(db, price.inv_var_id, price.typeprice_id, exclude_id=inv_price_id)
        price.is_current = 1
        price.user_id = user_id
        db.flush()
        logger.info("Price %s is now current for variant %s", inv_price_id, price.inv_var_id)
        return price
