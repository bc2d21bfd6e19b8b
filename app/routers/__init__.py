# app/routers/__init__.py

from .masters.item_router import router as item_router

from .sales.sales_order_router import router as sales_order_router
from .sales.delivery_order_router import router as delivery_order_router
from .sales.backlog_router import router as backlog_router

from .purchasing.purchase_order_router import router as purchase_order_router

from .support.activity_router import router as activity_router


__all__ = [
"item_router",

"sales_order_router",
"delivery_order_router",
"backlog_router",

"purchase_order_router",

"activity_router",
]
