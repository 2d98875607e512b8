"""
Services package initialization.
Business logic layer for tenancy, currency, pricing and stock operations.
"""

from .common import (
    ServiceError,
    NotFoundError,
    AlreadyExistsError,
    InvalidOperationError,
    InsufficientStockError,
    to_decimal,
)
from .currency_service import CurrencyService, CurrencyExchangeService, convert_amount
from .inventory_service import (
    FamilyService,
    StorageService,
    AttributeService,
    InventoryService,
    VariantService,
)
from .lot_service import LotService
from .price_service import TypeOfPriceService, PriceService
from .stock_service import VariantStorageService, LotStorageService, MovementService

__all__ = [
    'ServiceError',
    'NotFoundError',
    'AlreadyExistsError',
    'InvalidOperationError',
    'InsufficientStockError',
    'to_decimal',
    'CurrencyService',
    'CurrencyExchangeService',
    'convert_amount',
    'FamilyService',
    'StorageService',
    'AttributeService',
    'InventoryService',
    'VariantService',
    'LotService',
    'TypeOfPriceService',
    'PriceService',
    'VariantStorageService',
    'LotStorageService',
    'MovementService',
]
