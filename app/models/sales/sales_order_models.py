# app/models/sales/sales_order_models.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin, ActorMixin
from app.models.enums.sales_order_status import SalesOrderStatus


class SalesOrder(Base, TimestampMixin, SoftDeleteMixin, ActorMixin):
    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(50), nullable=True, unique=True, index=True)
    customer_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(Enum(SalesOrderStatus), nullable=False, default=SalesOrderStatus.draft, index=True)
    version = Column(Integer, nullable=False, default=1)

    items = relationship(
        "SalesOrderItem",
        back_populates="sales_order",
        cascade="all, delete-orphan",
        order_by="SalesOrderItem.id",
        lazy="selectin",
    )
    delivery_orders = relationship("DeliveryOrder", back_populates="sales_order", lazy="raise")

    def __repr__(self):
        return (
            f"<SalesOrder id={self.id} "
            f"number={self.order_number} "
            f"status={self.status}>"
        )


class SalesOrderItem(Base, TimestampMixin):
    __tablename__ = "sales_order_items"

    id = Column(Integer, primary_key=True)

    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # resolved catalog item, persisted on the first successful match
    item_id = Column(Integer, ForeignKey("items.id", ondelete="SET NULL"), nullable=True, index=True)
    description = Column(String(500), nullable=False)

    ordered_quantity = Column(Integer, nullable=False)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    backordered_quantity = Column(Integer, nullable=False, default=0)

    sales_order = relationship("SalesOrder", back_populates="items", lazy="selectin")
    item = relationship("CatalogItem", lazy="selectin")

    __table_args__ = (
        CheckConstraint("ordered_quantity > 0", name="ck_soi_ordered_qty"),
        CheckConstraint("reserved_quantity >= 0", name="ck_soi_reserved_qty"),
        CheckConstraint("backordered_quantity >= 0", name="ck_soi_backordered_qty"),
        CheckConstraint(
            "reserved_quantity + backordered_quantity <= ordered_quantity",
            name="ck_soi_split_within_ordered",
        ),
        Index("ix_soi_backlog_fifo", "item_id", "backordered_quantity", "created_at"),
    )

    def __repr__(self):
        return (
            f"<SalesOrderItem id={self.id} "
            f"item_id={self.item_id} "
            f"ordered={self.ordered_quantity} "
            f"reserved={self.reserved_quantity} "
            f"backordered={self.backordered_quantity}>"
        )
