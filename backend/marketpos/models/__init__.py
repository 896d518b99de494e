from .catalog import (
    Product,
    StockLedgerEntry,
    STOCK_RECEIVE,
    STOCK_ADJUSTMENT,
    STOCK_SALE,
    STOCK_TRANSACTION_TYPES,
)
from .sales import Sale, SaleLine, BillSequence

__all__ = [
    'Product', 'StockLedgerEntry',
    'STOCK_RECEIVE', 'STOCK_ADJUSTMENT', 'STOCK_SALE', 'STOCK_TRANSACTION_TYPES',
    'Sale', 'SaleLine', 'BillSequence',
]
