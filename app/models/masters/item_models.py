from sqlalchemy import Column, Integer, String, Enum, Index, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin, ActorMixin
from app.models.enums.item_category import ItemCategory


class CatalogItem(Base, TimestampMixin, SoftDeleteMixin, ActorMixin):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=True)
    category = Column(Enum(ItemCategory), nullable=False, default=ItemCategory.goods, index=True)
    on_hand = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    movements = relationship("StockMovement", back_populates="item", lazy="raise")

    __table_args__ = (
        CheckConstraint("on_hand >= 0", name="ck_item_on_hand_non_negative"),
        Index("ix_item_name_category", "name", "category"),
    )

    @property
    def is_stock_tracked(self) -> bool:
        return self.category != ItemCategory.service

    def __repr__(self):
        return f"<CatalogItem id={self.id} name={self.name} on_hand={self.on_hand}>"
