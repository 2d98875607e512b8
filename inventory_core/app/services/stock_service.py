"""
Stock Service
=============
Stock per (variant, storage) and per (lot, storage), plus the movement
log that changes them.

- Stock rows lock with SELECT FOR UPDATE before a quantity change
- A movement and the stock it moves are written in the same transaction
- Movements are immutable apart from their reason and related document
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, distinct, case
from sqlalchemy.orm import Session

from ..models_inventory import (
    InventoryVariantStorage, InventoryLotStorage, InventoryMovement,
    InventoryVariant, Inventory, MovementType
)
from .common import (
    NotFoundError, AlreadyExistsError, InvalidOperationError, InsufficientStockError,
    QUANTITY_PLACES, to_decimal, paginate, apply_changes, drop_required_nulls
)
from .inventory_service import VariantService, StorageService, InventoryService
from .lot_service import LotService

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def _check_quantities(data: dict, prefix: str):
    for suffix in ("", "_reserved", "_committed", "_prev", "_min"):
        field = f"{prefix}{suffix}"
        value = data.get(field)
        if value is not None and Decimal(str(value)) < 0:
            raise InvalidOperationError(f"{field} cannot be negative")


def _stock_summary(query, stock, reserved, committed, minimum) -> dict:
    row = query.with_entities(
        func.count(),
        func.coalesce(func.sum(stock), 0),
        func.coalesce(func.sum(reserved), 0),
        func.coalesce(func.sum(committed), 0),
        func.coalesce(func.sum(minimum), 0),
    ).one()
    locations, total, total_reserved, total_committed, total_min = row
    total = to_decimal(total)
    total_reserved = to_decimal(total_reserved)
    total_committed = to_decimal(total_committed)
    return {
        "storage_locations": locations,
        "total_stock": total,
        "total_reserved": total_reserved,
        "total_committed": total_committed,
        "total_available": total - total_reserved - total_committed,
        "total_min": to_decimal(total_min),
    }


# =============================================================================
# VARIANT STORAGES
# =============================================================================

class VariantStorageService:

    @staticmethod
    def _company_rows(db: Session, company_id: int):
        return db.query(InventoryVariantStorage).join(
            InventoryVariant, InventoryVariantStorage.inv_var_id == InventoryVariant.inv_var_id
        ).join(
            Inventory, InventoryVariant.inv_id == Inventory.inv_id
        ).filter(Inventory.company_id == company_id)

    @staticmethod
    def get(db: Session, company_id: int, inv_var_storage_id: int) -> InventoryVariantStorage:
        row = VariantStorageService._company_rows(db, company_id).filter(
            InventoryVariantStorage.inv_var_storage_id == inv_var_storage_id
        ).first()
        if not row:
            raise NotFoundError("Variant storage not found")
        return row

    @staticmethod
    def find(db: Session, inv_var_id: int, storage_id: int, lock: bool = False) -> Optional[InventoryVariantStorage]:
        query = db.query(InventoryVariantStorage).filter(
            InventoryVariantStorage.inv_var_id == inv_var_id,
            InventoryVariantStorage.id_inv_storage == storage_id
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_by_variant_and_storage(db: Session, company_id: int, inv_var_id: int, storage_id: int) -> InventoryVariantStorage:
        VariantService.get(db, company_id, inv_var_id)
        StorageService.get(db, company_id, storage_id)
        row = VariantStorageService.find(db, inv_var_id, storage_id)
        if not row:
            raise NotFoundError("Variant storage not found")
        return row

    @staticmethod
    def list_by_variant(db: Session, company_id: int, inv_var_id: int, page: int, limit: int):
        VariantService.get(db, company_id, inv_var_id)
        query = db.query(InventoryVariantStorage).filter(
            InventoryVariantStorage.inv_var_id == inv_var_id
        ).order_by(InventoryVariantStorage.id_inv_storage)
        return paginate(query, page, limit)

    @staticmethod
    def list_by_storage(db: Session, company_id: int, storage_id: int, page: int, limit: int):
        StorageService.get(db, company_id, storage_id)
        query = db.query(InventoryVariantStorage).filter(
            InventoryVariantStorage.id_inv_storage == storage_id
        ).order_by(InventoryVariantStorage.inv_var_id)
        return paginate(query, page, limit)

    @staticmethod
    def summary(db: Session, company_id: int, inv_var_id: int) -> dict:
        VariantService.get(db, company_id, inv_var_id)
        query = db.query(InventoryVariantStorage).filter(InventoryVariantStorage.inv_var_id == inv_var_id)
        result = _stock_summary(
            query,
            InventoryVariantStorage.inv_vs_stock,
            InventoryVariantStorage.inv_vs_stock_reserved,
            InventoryVariantStorage.inv_vs_stock_committed,
            InventoryVariantStorage.inv_vs_stock_min,
        )
        result["inv_var_id"] = inv_var_id
        return result

    @staticmethod
    def create(db: Session, company_id: int, data: dict, user_id: Optional[int] = None) -> InventoryVariantStorage:
        VariantService.get(db, company_id, data["inv_var_id"])
        StorageService.get(db, company_id, data["id_inv_storage"])
        _check_quantities(data, "inv_vs_stock")
        if VariantStorageService.find(db, data["inv_var_id"], data["id_inv_storage"]):
            raise AlreadyExistsError("This variant already has a stock record in that storage")

        row = InventoryVariantStorage(user_id=user_id, **data)
        db.add(row)
        db.flush()
        return row

    @staticmethod
    def update(db: Session, company_id: int, inv_var_storage_id: int, data: dict,
               user_id: Optional[int] = None) -> InventoryVariantStorage:
        row = VariantStorageService.get(db, company_id, inv_var_storage_id)
        data = drop_required_nulls(InventoryVariantStorage, data)
        _check_quantities(data, "inv_vs_stock")
        if data.get("inv_vs_stock") is not None and "inv_vs_stock_prev" not in data:
            data["inv_vs_stock_prev"] = row.inv_vs_stock
        apply_changes(row, data)
        row.user_id = user_id
        db.flush()
        return row

    @staticmethod
    def update_stock(db: Session, company_id: int, inv_var_id: int, storage_id: int, data: dict,
                     user_id: Optional[int] = None) -> InventoryVariantStorage:
        VariantService.get(db, company_id, inv_var_id)
        StorageService.get(db, company_id, storage_id)
        row = VariantStorageService.find(db, inv_var_id, storage_id, lock=True)
        if not row:
            raise NotFoundError("Variant storage not found")
        return VariantStorageService.update(db, company_id, row.inv_var_storage_id, data, user_id)

    @staticmethod
    def delete(db: Session, company_id: int, inv_var_storage_id: int):
        row = VariantStorageService.get(db, company_id, inv_var_storage_id)
        db.delete(row)
        db.flush()


# =============================================================================
# LOT STORAGES
# =============================================================================

class LotStorageService:

    @staticmethod
    def _company_rows(db: Session, company_id: int):
        return db.query(InventoryLotStorage).join(
            InventoryVariant, InventoryLotStorage.inv_var_id == InventoryVariant.inv_var_id
        ).join(
            Inventory, InventoryVariant.inv_id == Inventory.inv_id
        ).filter(Inventory.company_id == company_id)

    @staticmethod
    def get(db: Session, company_id: int, inv_lot_storage_id: int) -> InventoryLotStorage:
        row = LotStorageService._company_rows(db, company_id).filter(
            InventoryLotStorage.inv_lot_storage_id == inv_lot_storage_id
        ).first()
        if not row:
            raise NotFoundError("Lot storage not found")
        return row

    @staticmethod
    def find(db: Session, lot_id: int, storage_id: int, lock: bool = False) -> Optional[InventoryLotStorage]:
        query = db.query(InventoryLotStorage).filter(
            InventoryLotStorage.inv_lot_id == lot_id,
            InventoryLotStorage.id_inv_storage == storage_id
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_by_lot_and_storage(db: Session, company_id: int, lot_id: int, storage_id: int) -> InventoryLotStorage:
        LotService.get(db, company_id, lot_id)
        StorageService.get(db, company_id, storage_id)
        row = LotStorageService.find(db, lot_id, storage_id)
        if not row:
            raise NotFoundError("Lot storage not found")
        return row

    @staticmethod
    def list_by_variant(db: Session, company_id: int, inv_var_id: int, page: int, limit: int):
        VariantService.get(db, company_id, inv_var_id)
        query = db.query(InventoryLotStorage).filter(
            InventoryLotStorage.inv_var_id == inv_var_id
        ).order_by(InventoryLotStorage.inv_lot_id, InventoryLotStorage.id_inv_storage)
        return paginate(query, page, limit)

    @staticmethod
    def list_by_lot(db: Session, company_id: int, lot_id: int, page: int, limit: int):
        LotService.get(db, company_id, lot_id)
        query = db.query(InventoryLotStorage).filter(
            InventoryLotStorage.inv_lot_id == lot_id
        ).order_by(InventoryLotStorage.id_inv_storage)
        return paginate(query, page, limit)

    @staticmethod
    def list_by_variant_and_lot(db: Session, company_id: int, inv_var_id: int, lot_id: int, page: int, limit: int):
        lot = LotService.get(db, company_id, lot_id)
        if lot.inv_var_id != inv_var_id:
            raise NotFoundError("Lot does not belong to this variant")
        return LotStorageService.list_by_lot(db, company_id, lot_id, page, limit)

    @staticmethod
    def list_by_storage(db: Session, company_id: int, storage_id: int, page: int, limit: int):
        StorageService.get(db, company_id, storage_id)
        query = db.query(InventoryLotStorage).filter(
            InventoryLotStorage.id_inv_storage == storage_id
        ).order_by(InventoryLotStorage.inv_lot_id)
        return paginate(query, page, limit)

    @staticmethod
    def summary(db: Session, company_id: int, lot_id: int) -> dict:
        lot = LotService.get(db, company_id, lot_id)
        query = db.query(InventoryLotStorage).filter(InventoryLotStorage.inv_lot_id == lot_id)
        result = _stock_summary(
            query,
            InventoryLotStorage.inv_ls_stock,
            InventoryLotStorage.inv_ls_stock_reserved,
            InventoryLotStorage.inv_ls_stock_committed,
            InventoryLotStorage.inv_ls_stock_min,
        )
        result.update({"inv_lot_id": lot_id, "inv_var_id": lot.inv_var_id, "lot_number": lot.lot_number})
        return result

    @staticmethod
    def create(db: Session, company_id: int, data: dict, user_id: Optional[int] = None) -> InventoryLotStorage:
        lot = LotService.get(db, company_id, data["inv_lot_id"])
        if data.get("inv_var_id") is not None and data["inv_var_id"] != lot.inv_var_id:
            raise InvalidOperationError("Lot does not belong to the given variant")
        data["inv_var_id"] = lot.inv_var_id

        StorageService.get(db, company_id, data["id_inv_storage"])
        _check_quantities(data, "inv_ls_stock")
        if LotStorageService.find(db, lot.inv_lot_id, data["id_inv_storage"]):
            raise AlreadyExistsError("This lot already has a stock record in that storage")

        row = InventoryLotStorage(user_id=user_id, **data)
        db.add(row)
        db.flush()
        return row

    @staticmethod
    def update(db: Session, company_id: int, inv_lot_storage_id: int, data: dict,
               user_id: Optional[int] = None) -> InventoryLotStorage:
        row = LotStorageService.get(db, company_id, inv_lot_storage_id)
        data = drop_required_nulls(InventoryLotStorage, data)
        _check_quantities(data, "inv_ls_stock")
        if data.get("inv_ls_stock") is not None and "inv_ls_stock_prev" not in data:
            data["inv_ls_stock_prev"] = row.inv_ls_stock
        apply_changes(row, data)
        row.user_id = user_id
        db.flush()
        return row

    @staticmethod
    def update_stock(db: Session, company_id: int, lot_id: int, storage_id: int, data: dict,
                     user_id: Optional[int] = None) -> InventoryLotStorage:
        LotService.get(db, company_id, lot_id)
        StorageService.get(db, company_id, storage_id)
        row = LotStorageService.find(db, lot_id, storage_id, lock=True)
        if not row:
            raise NotFoundError("Lot storage not found")
        return LotStorageService.update(db, company_id, row.inv_lot_storage_id, data, user_id)

    @staticmethod
    def delete(db: Session, company_id: int, inv_lot_storage_id: int):
        row = LotStorageService.get(db, company_id, inv_lot_storage_id)
        db.delete(row)
        db.flush()


# =============================================================================
# MOVEMENTS
# =============================================================================

class MovementService:

    @staticmethod
    def _company_movements(db: Session, company_id: int):
        return db.query(InventoryMovement).join(
            InventoryVariant, InventoryMovement.inv_var_id == InventoryVariant.inv_var_id
        ).join(
            Inventory, InventoryVariant.inv_id == Inventory.inv_id
        ).filter(Inventory.company_id == company_id)

    @staticmethod
    def _newest_first(query):
        return query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.inv_storage_move_id.desc())

    @staticmethod
    def get(db: Session, company_id: int, move_id: int) -> InventoryMovement:
        movement = MovementService._company_movements(db, company_id).filter(
            InventoryMovement.inv_storage_move_id == move_id
        ).first()
        if not movement:
            raise NotFoundError("Inventory movement not found")
        return movement

    @staticmethod
    def list(db: Session, company_id: int, page: int, limit: int,
             inv_var_id: Optional[int] = None, lot_id: Optional[int] = None,
             storage_id: Optional[int] = None, movement_type: Optional[int] = None,
             user_id: Optional[int] = None, related_doc: Optional[str] = None,
             start: Optional[datetime] = None, end: Optional[datetime] = None):
        """Movements of the company filtered by any combination of criteria"""
        query = MovementService._company_movements(db, company_id)
        if inv_var_id is not None:
            query = query.filter(InventoryMovement.inv_var_id == inv_var_id)
        if lot_id is not None:
            query = query.filter(InventoryMovement.inv_lot_id == lot_id)
        if storage_id is not None:
            query = query.filter(
                (InventoryMovement.id_inv_storage == storage_id) |
                (InventoryMovement.id_inv_storage_to == storage_id)
            )
        if movement_type is not None:
            query = query.filter(InventoryMovement.movement_type == movement_type)
        if user_id is not None:
            query = query.filter(InventoryMovement.user_id == user_id)
        if related_doc:
            query = query.filter(InventoryMovement.related_doc == related_doc)
        if start is not None:
            query = query.filter(InventoryMovement.created_at >= start)
        if end is not None:
            query = query.filter(InventoryMovement.created_at <= end)
        return paginate(MovementService._newest_first(query), page, limit)

    @staticmethod
    def latest(db: Session, company_id: int, limit: int = 10):
        return MovementService._newest_first(MovementService._company_movements(db, company_id)).limit(limit).all()

    @staticmethod
    def statistics(db: Session, company_id: int, start: Optional[datetime] = None,
                   end: Optional[datetime] = None, movement_type: Optional[int] = None) -> dict:
        query = MovementService._company_movements(db, company_id)
        if start is not None:
            query = query.filter(InventoryMovement.created_at >= start)
        if end is not None:
            query = query.filter(InventoryMovement.created_at <= end)
        if movement_type is not None:
            query = query.filter(InventoryMovement.movement_type == movement_type)

        def total_for(kind):
            return func.coalesce(func.sum(case(
                (InventoryMovement.movement_type == kind, InventoryMovement.quantity), else_=0
            )), 0)

        row = query.with_entities(
            func.count(InventoryMovement.inv_storage_move_id),
            total_for(MovementType.IN),
            total_for(MovementType.OUT),
            total_for(MovementType.TRANSFER),
            func.count(distinct(InventoryMovement.inv_var_id)),
            func.count(distinct(InventoryMovement.id_inv_storage)),
        ).one()

        count, total_in, total_out, total_transfer, variants, storages = row
        return {
            "total_movements": count,
            "total_in": to_decimal(total_in),
            "total_out": to_decimal(total_out),
            "total_transfer": to_decimal(total_transfer),
            "unique_variants": variants,
            "unique_storages": storages,
        }

    # -------------------------------------------------------------------------
    # Stock application
    # -------------------------------------------------------------------------

    @staticmethod
    def _variant_row(db: Session, inv_var_id: int, storage_id: int, user_id: Optional[int],
                     create: bool) -> Optional[InventoryVariantStorage]:
        row = VariantStorageService.find(db, inv_var_id, storage_id, lock=True)
        if row is None and create:
            row = InventoryVariantStorage(inv_var_id=inv_var_id, id_inv_storage=storage_id,
                                          inv_vs_stock=ZERO, user_id=user_id)
            db.add(row)
        return row

    @staticmethod
    def _lot_row(db: Session, inv_var_id: int, lot_id: int, storage_id: int, user_id: Optional[int],
                 create: bool) -> Optional[InventoryLotStorage]:
        row = LotStorageService.find(db, lot_id, storage_id, lock=True)
        if row is None and create:
            row = InventoryLotStorage(inv_var_id=inv_var_id, inv_lot_id=lot_id, id_inv_storage=storage_id,
                                      inv_ls_stock=ZERO, user_id=user_id)
            db.add(row)
        return row

    @staticmethod
    def _take(db: Session, inv_var_id: int, lot_id: Optional[int], storage_id: int,
              quantity: Decimal, user_id: Optional[int]):
        row = MovementService._variant_row(db, inv_var_id, storage_id, user_id, create=False)
        available = (row.inv_vs_stock or ZERO) if row else ZERO
        if available < quantity:
            raise InsufficientStockError(
                f"Insufficient stock in storage {storage_id}. "
                f"Available: {available}, Requested: {quantity}"
            )
        lot_row = None
        if lot_id is not None:
            lot_row = MovementService._lot_row(db, inv_var_id, lot_id, storage_id, user_id, create=False)
            lot_available = (lot_row.inv_ls_stock or ZERO) if lot_row else ZERO
            if lot_available < quantity:
                raise InsufficientStockError(
                    f"Insufficient stock of lot {lot_id} in storage {storage_id}. "
                    f"Available: {lot_available}, Requested: {quantity}"
                )

        row.inv_vs_stock_prev = row.inv_vs_stock
        row.inv_vs_stock = row.inv_vs_stock - quantity
        row.user_id = user_id
        if lot_row is not None:
            lot_row.inv_ls_stock_prev = lot_row.inv_ls_stock
            lot_row.inv_ls_stock = lot_row.inv_ls_stock - quantity
            lot_row.user_id = user_id

    @staticmethod
    def _put(db: Session, inv_var_id: int, lot_id: Optional[int], storage_id: int,
             quantity: Decimal, user_id: Optional[int]):
        row = MovementService._variant_row(db, inv_var_id, storage_id, user_id, create=True)
        row.inv_vs_stock_prev = row.inv_vs_stock or ZERO
        row.inv_vs_stock = (row.inv_vs_stock or ZERO) + quantity
        row.user_id = user_id
        if lot_id is not None:
            lot_row = MovementService._lot_row(db, inv_var_id, lot_id, storage_id, user_id, create=True)
            lot_row.inv_ls_stock_prev = lot_row.inv_ls_stock or ZERO
            lot_row.inv_ls_stock = (lot_row.inv_ls_stock or ZERO) + quantity
            lot_row.user_id = user_id

    @staticmethod
    def create(db: Session, company_id: int, data: dict, user_id: Optional[int] = None) -> InventoryMovement:
        """
        Record a movement and apply it to stock.

        Raises:
            InsufficientStockError: OUT or TRANSFER larger than the stock in the source storage
            InvalidOperationError: missing lot for a lot-managed item, bad transfer target
        """
        movement_type = data["movement_type"]
        if movement_type not in MovementType.ALL:
            raise InvalidOperationError("Invalid movement type")

        quantity = to_decimal(data["quantity"], QUANTITY_PLACES)
        if quantity <= 0:
            raise InvalidOperationError("Quantity must be greater than zero")

        variant = VariantService.get(db, company_id, data["inv_var_id"])
        StorageService.get(db, company_id, data["id_inv_storage"])
        inventory = variant.inventory

        lot_id = data.get("inv_lot_id")
        if lot_id is not None:
            lot = LotService.get(db, company_id, lot_id)
            if lot.inv_var_id != variant.inv_var_id:
                raise InvalidOperationError("Lot does not belong to the given variant")
        elif InventoryService.is_lot_managed(inventory):
            raise InvalidOperationError("A lot is required for lot-managed inventory")

        target_id = data.get("id_inv_storage_to")
        if movement_type == MovementType.TRANSFER:
            if target_id is None:
                raise InvalidOperationError("A transfer needs a destination storage")
            if target_id == data["id_inv_storage"]:
                raise InvalidOperationError("Source and destination storage must differ")
            StorageService.get(db, company_id, target_id)
        elif target_id is not None:
            raise InvalidOperationError("Only transfers have a destination storage")

        movement = InventoryMovement(
            id_inv_storage=data["id_inv_storage"],
            id_inv_storage_to=target_id,
            inv_var_id=variant.inv_var_id,
            inv_lot_id=lot_id,
            movement_type=movement_type,
            quantity=quantity,
            movement_reason=data.get("movement_reason"),
            related_doc=data.get("related_doc"),
            user_id=user_id,
        )
        db.add(movement)

        if InventoryService.is_stockable(inventory):
            if movement_type == MovementType.IN:
                MovementService._put(db, variant.inv_var_id, lot_id, data["id_inv_storage"], quantity, user_id)
            elif movement_type == MovementType.OUT:
                MovementService._take(db, variant.inv_var_id, lot_id, data["id_inv_storage"], quantity, user_id)
            else:
                MovementService._take(db, variant.inv_var_id, lot_id, data["id_inv_storage"], quantity, user_id)
                MovementService._put(db, variant.inv_var_id, lot_id, target_id, quantity, user_id)

            if movement_type != MovementType.TRANSFER:
                delta = quantity if movement_type == MovementType.IN else -quantity
                inventory.inv_previous_existence = inventory.inv_current_existence
                inventory.inv_current_existence = (inventory.inv_current_existence or ZERO) + delta

        db.flush()
        logger.info(
            "Recorded %s movement %s of %s for variant %s",
            MovementType.NAMES[movement_type], movement.inv_storage_move_id, quantity, variant.inv_var_id,
            extra={"storage_id": data["id_inv_storage"], "lot_id": lot_id, "related_doc": movement.related_doc}
        )
        return movement

    @staticmethod
    def update(db: Session, company_id: int, move_id: int, data: dict) -> InventoryMovement:
        movement = MovementService.get(db, company_id, move_id)
        data = drop_required_nulls(InventoryMovement, data)
        immutable = set(data) - {"movement_reason", "related_doc"}
        if immutable:
            raise InvalidOperationError(
                f"Movements are immutable; only movement_reason and related_doc can change "
                f"(got {', '.join(sorted(immutable))})"
            )
        apply_changes(movement, data)
        db.flush()
        return movement
