# app/constants/activity_codes.py

from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- CATALOG ----------------
    CREATE_ITEM = "CREATE_ITEM"
    ADJUST_STOCK = "ADJUST_STOCK"
    STOCK_MOVEMENT = "STOCK_MOVEMENT"

    # ---------------- SALES ORDERS ----------------
    CREATE_SALES_ORDER = "CREATE_SALES_ORDER"
    CONFIRM_SALES_ORDER = "CONFIRM_SALES_ORDER"
    REVERT_SALES_ORDER = "REVERT_SALES_ORDER"
    CANCEL_SALES_ORDER = "CANCEL_SALES_ORDER"

    # ---------------- DELIVERY ORDERS ----------------
    CREATE_DELIVERY_ORDER = "CREATE_DELIVERY_ORDER"
    UPDATE_DELIVERY_ORDER = "UPDATE_DELIVERY_ORDER"
    DELIVER_DELIVERY_ORDER = "DELIVER_DELIVERY_ORDER"
    CANCEL_DELIVERY_ORDER = "CANCEL_DELIVERY_ORDER"

    # ---------------- PURCHASE ORDERS ----------------
    CREATE_PURCHASE_ORDER = "CREATE_PURCHASE_ORDER"
    RECEIVE_PURCHASE_ORDER = "RECEIVE_PURCHASE_ORDER"
    CANCEL_PURCHASE_ORDER = "CANCEL_PURCHASE_ORDER"
    CLEAR_BACKORDER = "CLEAR_BACKORDER"
