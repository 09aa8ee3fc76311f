from sqlalchemy import Column, Integer, String, Boolean, Date, Numeric, ForeignKey, Table
from app.core.db import Base
from app.models.base.mixins import TimestampMixin


# Written by the production module; the lot ledger only reads it.
batch_lots = Table(
    "production_batch_lots",
    Base.metadata,
    Column("batch_id", Integer, ForeignKey("production_batches.id", ondelete="CASCADE"), primary_key=True),
    Column("lot_id", Integer, ForeignKey("lots.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("quantity_used", Numeric(14, 3), nullable=True),
)


class ProductionBatch(Base, TimestampMixin):
    __tablename__ = "production_batches"

    id = Column(Integer, primary_key=True)
    batch_code = Column(String(50), nullable=False, unique=True, index=True)
    batch_date = Column(Date, nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False, index=True)

    def __repr__(self):
        return f"<ProductionBatch id={self.id} code={self.batch_code} locked={self.is_locked}>"
