from sqlalchemy import Column, Integer, String, Boolean, UniqueConstraint, Index
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class Tag(Base, TimestampMixin, AuditMixin):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    inventory_type = Column(String(32), nullable=False, index=True)
    tag_key = Column(String(100), nullable=False)
    display_name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("inventory_type", "tag_key", name="uq_tag_type_key"),
        Index("ix_tag_type_active", "inventory_type", "is_active"),
    )

    def __repr__(self):
        return f"<Tag id={self.id} type={self.inventory_type} key={self.tag_key}>"
