from .tenancy import Seller, SalesPerson
from .inventory import Product, PriceTierPreset
from .orders import Order, OrderLine, Payment, OrderEvent
from .documents import DocumentSequence

__all__ = [
    'Seller', 'SalesPerson',
    'Product', 'PriceTierPreset',
    'Order', 'OrderLine', 'Payment', 'OrderEvent',
    'DocumentSequence',
]
