from .customers import Customer
from .rates import MetalRate
from .inventory import Item
from .billing import Bill, BillItem, AdvanceBooking, LayawayTransaction
from .exchanges import OldGoldExchange
from .purchases import PurchaseBill, PurchaseItem
from .documents import DocumentSequence

__all__ = [
    'Customer',
    'MetalRate',
    'Item',
    'Bill', 'BillItem', 'AdvanceBooking', 'LayawayTransaction',
    'OldGoldExchange',
    'PurchaseBill', 'PurchaseItem',
    'DocumentSequence',
]
