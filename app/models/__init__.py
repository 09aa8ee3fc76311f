# Users
from app.models.users.user_models import User
from app.models.support.activity_models import UserActivity

# Catalog
from app.models.catalog.tag_models import Tag
from app.models.catalog.unit_models import Unit

# Inventory
from app.models.inventory.lot_models import (
    Lot,
    RawMaterialLot,
    RecurringProductLot,
    ProducedGoodsBatch,
    lot_tags,
)
from app.models.inventory.production_batch_models import ProductionBatch, batch_lots
from app.models.inventory.inventory_movement_models import InventoryMovement

# Analytics
from app.models.analytics.low_stock_threshold_models import LowStockThreshold
