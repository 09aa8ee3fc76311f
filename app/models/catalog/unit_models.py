from sqlalchemy import Column, Integer, String, Boolean, UniqueConstraint
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class Unit(Base, TimestampMixin, AuditMixin):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    inventory_type = Column(String(32), nullable=False, index=True)
    unit_key = Column(String(50), nullable=False)
    display_name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    allows_decimal = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("inventory_type", "unit_key", name="uq_unit_type_key"),
    )

    def __repr__(self):
        return f"<Unit id={self.id} key={self.unit_key} decimal={self.allows_decimal}>"
