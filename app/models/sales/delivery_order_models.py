from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, Enum, Index, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin, ActorMixin
from app.models.enums.delivery_order_status import DeliveryOrderStatus


class DeliveryOrder(Base, TimestampMixin, SoftDeleteMixin, ActorMixin):
    __tablename__ = "delivery_orders"

    id = Column(Integer, primary_key=True)
    delivery_number = Column(String(50), nullable=True, unique=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Enum(DeliveryOrderStatus), nullable=False, default=DeliveryOrderStatus.pending, index=True)
    delivery_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    sales_order = relationship("SalesOrder", back_populates="delivery_orders", lazy="selectin")
    items = relationship(
        "DeliveryOrderItem",
        back_populates="delivery_order",
        cascade="all, delete-orphan",
        order_by="DeliveryOrderItem.id",
        lazy="selectin",
    )

    __table_args__ = (Index("ix_delivery_order_so_status", "sales_order_id", "status"),)

    def __repr__(self):
        return f"<DeliveryOrder id={self.id} so={self.sales_order_id} status={self.status}>"


class DeliveryOrderItem(Base):
    __tablename__ = "delivery_order_items"

    id = Column(Integer, primary_key=True)
    delivery_order_id = Column(Integer, ForeignKey("delivery_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    sales_order_item_id = Column(Integer, ForeignKey("sales_order_items.id", ondelete="SET NULL"), nullable=True, index=True)
    description = Column(String(500), nullable=False)
    shipped_quantity = Column(Integer, nullable=False)

    delivery_order = relationship("DeliveryOrder", back_populates="items", lazy="selectin")

    __table_args__ = (CheckConstraint("shipped_quantity > 0", name="ck_doi_shipped_qty_positive"),)

    def __repr__(self):
        return f"<DeliveryOrderItem id={self.id} soi={self.sales_order_item_id} qty={self.shipped_quantity}>"
