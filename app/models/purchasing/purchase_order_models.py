from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin, ActorMixin
from app.models.enums.purchase_order_status import PurchaseOrderStatus


class PurchaseOrder(Base, TimestampMixin, SoftDeleteMixin, ActorMixin):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    po_number = Column(String(50), nullable=True, unique=True, index=True)
    supplier_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(Enum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.pending, index=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<PurchaseOrder id={self.id} number={self.po_number} status={self.status}>"


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    received_quantity = Column(Integer, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="items", lazy="selectin")

    __table_args__ = (CheckConstraint("received_quantity > 0", name="ck_poi_received_qty_positive"),)

    def __repr__(self):
        return f"<PurchaseOrderItem id={self.id} qty={self.received_quantity} desc={self.description!r}>"
