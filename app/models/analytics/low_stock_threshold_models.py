from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class LowStockThreshold(Base, TimestampMixin, AuditMixin):
    __tablename__ = "low_stock_thresholds"

    id = Column(Integer, primary_key=True)
    inventory_type = Column(String(32), nullable=False, index=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, unique=True)
    threshold_quantity = Column(Numeric(14, 3), nullable=False)

    __table_args__ = (
        CheckConstraint("threshold_quantity >= 0", name="ck_low_stock_threshold_non_negative"),
    )

    def __repr__(self):
        return f"<LowStockThreshold tag_id={self.tag_id} threshold={self.threshold_quantity}>"
