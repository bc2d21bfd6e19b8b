# app/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NO_CHANGES_DETECTED = "NO_CHANGES_DETECTED"

    # ---------------- LEDGER ----------------
    INVALID_TRANSITION = "INVALID_TRANSITION"
    UNMATCHED_LINE = "UNMATCHED_LINE"
    QUANTITY_VIOLATION = "QUANTITY_VIOLATION"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_MOVEMENT = "INVALID_MOVEMENT"
    CONCURRENT_UPDATE = "CONCURRENT_UPDATE"

    # ---------------- ITEMS ----------------
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    ITEM_NAME_EXISTS = "ITEM_NAME_EXISTS"

    # ---------------- SALES ORDERS ----------------
    SALES_ORDER_NOT_FOUND = "SALES_ORDER_NOT_FOUND"
    SALES_ORDER_EMPTY_ITEMS = "SALES_ORDER_EMPTY_ITEMS"
    SALES_ORDER_NUMBER_EXISTS = "SALES_ORDER_NUMBER_EXISTS"

    # ---------------- DELIVERY ORDERS ----------------
    DELIVERY_ORDER_NOT_FOUND = "DELIVERY_ORDER_NOT_FOUND"
    DELIVERY_ORDER_EMPTY_ITEMS = "DELIVERY_ORDER_EMPTY_ITEMS"
    DELIVERY_ORDER_INVALID_LINE = "DELIVERY_ORDER_INVALID_LINE"

    # ---------------- PURCHASE ORDERS ----------------
    PURCHASE_ORDER_NOT_FOUND = "PURCHASE_ORDER_NOT_FOUND"
    PURCHASE_ORDER_EMPTY_ITEMS = "PURCHASE_ORDER_EMPTY_ITEMS"
    BACKLOG_ITEM_INVALID = "BACKLOG_ITEM_INVALID"
