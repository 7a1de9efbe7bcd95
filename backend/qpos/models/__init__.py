from .catalog import Product, ProductVariant
from .customers import Customer
from .inventory import StockLog
from .sales import Order, OrderItem, Payment
from .documents import DocumentSequence
from .settings import KeyValue

__all__ = [
    'Product', 'ProductVariant',
    'Customer',
    'StockLog',
    'Order', 'OrderItem', 'Payment',
    'DocumentSequence',
    'KeyValue',
]
