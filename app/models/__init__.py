# Catalog
from app.models.masters.item_models import CatalogItem

# Inventory
from app.models.inventory.stock_movement_models import StockMovement

# Sales
from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.models.sales.delivery_order_models import DeliveryOrder, DeliveryOrderItem

# Purchasing
from app.models.purchasing.purchase_order_models import PurchaseOrder, PurchaseOrderItem

# Support
from app.models.support.activity_models import ActivityLog
