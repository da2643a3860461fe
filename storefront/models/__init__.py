# storefront/models/__init__.py
from .user import *           # User
from .catalog import *        # Product
from .delivery import *       # DeliveryLocation
from .coupon import *         # Coupon
from .order import *          # Order, OrderItem
from .cart import *           # CartItem
from .order_status_log import *  # OrderStatusLog
from .stock_audit import *    # StockAudit
from .subscriber import *     # Subscriber
