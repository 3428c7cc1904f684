from .auth import User, SessionToken
from .customers import Customer
from .inventory import Product, InventoryRecord, InventoryTransaction
from .orders import Order, OrderItem
from .purchasing import Supplier, SupplierProduct, PurchaseOrder, PurchaseOrderItem
from .shipments import Shipment
from .invoices import Invoice
from .documents import DocumentSequence

__all__ = [
    'User', 'SessionToken',
    'Customer',
    'Product', 'InventoryRecord', 'InventoryTransaction',
    'Order', 'OrderItem',
    'Supplier', 'SupplierProduct', 'PurchaseOrder', 'PurchaseOrderItem',
    'Shipment',
    'Invoice',
    'DocumentSequence',
]
