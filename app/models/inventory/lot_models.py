from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    Numeric,
    ForeignKey,
    Table,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship, synonym
from app.core.db import Base
from app.constants.inventory import InventoryType
from app.models.base.mixins import TimestampMixin, AuditMixin


lot_tags = Table(
    "lot_tags",
    Base.metadata,
    Column("lot_id", Integer, ForeignKey("lots.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="RESTRICT"), primary_key=True, index=True),
)


class Lot(Base, TimestampMixin, AuditMixin):
    """A bounded quantity of one item received on one occasion.

    Variants share this table (single-table inheritance keyed on
    ``inventory_type``) and add their own optional columns.
    """

    __tablename__ = "lots"

    id = Column(Integer, primary_key=True)
    lot_code = Column(String(50), nullable=False, unique=True, index=True)
    inventory_type = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)

    primary_tag_id = Column(Integer, ForeignKey("tags.id", ondelete="SET NULL"), nullable=True, index=True)
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity_received = Column(Numeric(14, 3), nullable=False)
    quantity_available = Column(Numeric(14, 3), nullable=False)

    supplier_id = Column(Integer, nullable=True, index=True)
    received_date = Column(Date, nullable=True, index=True)
    handover_to_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount_paid = Column(Numeric(12, 2), nullable=True)
    storage_notes = Column(Text, nullable=True)
    document_url = Column(String(500), nullable=True)

    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    idempotency_key = Column(String(100), nullable=True, unique=True)
    version = Column(Integer, nullable=False, default=1)

    tags = relationship("Tag", secondary=lot_tags, lazy="selectin", order_by="Tag.id")
    unit = relationship("Unit", lazy="selectin")

    __mapper_args__ = {"polymorphic_on": inventory_type, "with_polymorphic": "*"}

    __table_args__ = (
        CheckConstraint("quantity_received > 0", name="ck_lot_quantity_received_positive"),
        CheckConstraint("quantity_available >= 0", name="ck_lot_quantity_available_non_negative"),
        CheckConstraint(
            "quantity_available <= quantity_received",
            name="ck_lot_quantity_available_bounded",
        ),
        Index("ix_lot_type_archived", "inventory_type", "is_archived"),
    )

    @property
    def tag_ids(self) -> list[int]:
        return [t.id for t in self.tags]

    def __repr__(self):
        return f"<Lot id={self.id} code={self.lot_code} available={self.quantity_available}>"


class RawMaterialLot(Lot):
    usable = Column(Boolean, nullable=True, default=True)
    condition = Column(String(100), nullable=True)

    __mapper_args__ = {"polymorphic_identity": InventoryType.RAW_MATERIAL.value}


class RecurringProductLot(Lot):
    __mapper_args__ = {"polymorphic_identity": InventoryType.RECURRING_PRODUCT.value}


class ProducedGoodsBatch(Lot):
    batch_name = Column(String(100), nullable=True)
    production_batch_id = Column(
        Integer,
        ForeignKey("production_batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    quantity_created = synonym("quantity_received")

    __mapper_args__ = {"polymorphic_identity": InventoryType.PRODUCED_GOODS.value}


LOT_MODEL_BY_TYPE = {
    InventoryType.RAW_MATERIAL: RawMaterialLot,
    InventoryType.RECURRING_PRODUCT: RecurringProductLot,
    InventoryType.PRODUCED_GOODS: ProducedGoodsBatch,
}
