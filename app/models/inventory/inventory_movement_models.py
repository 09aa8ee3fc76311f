from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, CheckConstraint, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.db import Base


class InventoryMovement(Base):
    """Append-only drawdown record. Never updated; removed only with its lot."""

    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="SET NULL"), nullable=True, index=True)
    inventory_type = Column(String(32), nullable=False)
    movement_date = Column(Date, nullable=False)
    kind = Column(String(20), nullable=False)
    quantity = Column(Numeric(14, 3), nullable=False)
    unit_key = Column(String(50), nullable=False)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    lot = relationship("Lot", lazy="raise")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_movement_quantity_positive"),
        CheckConstraint("kind IN ('CONSUMPTION', 'WASTE')", name="ck_inventory_movement_kind"),
        Index("ix_inventory_movement_lot_date", "lot_id", "movement_date"),
        Index("ix_inventory_movement_tag_date", "tag_id", "movement_date"),
        Index("ix_inventory_movement_type_date", "inventory_type", "movement_date"),
    )

    def __repr__(self):
        return f"<InventoryMovement id={self.id} lot_id={self.lot_id} kind={self.kind} qty={self.quantity}>"
