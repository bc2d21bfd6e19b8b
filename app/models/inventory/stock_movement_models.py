from sqlalchemy import Column, Integer, String, CheckConstraint, ForeignKey, Index, Enum
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, ActorMixin
from app.constants.inventory_movement_type import InventoryMovementType


class StockMovement(Base, TimestampMixin, ActorMixin):
    """Append-only signed adjustments; CatalogItem.on_hand is their running sum."""

    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    movement_type = Column(Enum(InventoryMovementType), nullable=False)
    quantity_change = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    reference_type = Column(String(50), nullable=False)
    reference_id = Column(Integer, nullable=False)

    item = relationship("CatalogItem", back_populates="movements", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_stock_movement_quantity_non_zero"),
        CheckConstraint("balance_after >= 0", name="ck_stock_movement_balance_non_negative"),
        Index("ix_stock_movement_reference", "reference_type", "reference_id"),
    )

    def __repr__(self):
        return (
            f"<StockMovement id={self.id} item_id={self.item_id} "
            f"{self.movement_type} qty={self.quantity_change} "
            f"ref={self.reference_type}:{self.reference_id}>"
        )
