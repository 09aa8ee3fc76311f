# app/routers/__init__.py

from .catalog.tag_router import router as tag_router
from .catalog.unit_router import router as unit_router

from .inventory.lot_router import router as lot_router

from .analytics.inventory_analytics_router import router as inventory_analytics_router

from .support.activity_router import router as activity_router


__all__ = [
"tag_router",
"unit_router",

"lot_router",

"inventory_analytics_router",

"activity_router",
]
