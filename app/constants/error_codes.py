# app/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"

    # ---------------- CATALOG ----------------
    TAG_KEY_EXISTS = "TAG_KEY_EXISTS"
    UNIT_KEY_EXISTS = "UNIT_KEY_EXISTS"

    # ---------------- LOTS ----------------
    LOT_LOCKED = "LOT_LOCKED"
    LOT_CODE_EXISTS = "LOT_CODE_EXISTS"
    LOT_VERSION_CONFLICT = "LOT_VERSION_CONFLICT"
    INSUFFICIENT_QUANTITY = "INSUFFICIENT_QUANTITY"
