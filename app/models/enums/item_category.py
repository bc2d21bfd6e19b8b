# app/models/enums/item_category.py
import enum

class ItemCategory(str, enum.Enum):
    goods = "goods"
    service = "service"
