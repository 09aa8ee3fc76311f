# app/constants/activity_codes.py

from enum import Enum


class ActivityCode(str, Enum):
    # ---------------- CATALOG ----------------
    CREATE_TAG = "CREATE_TAG"
    UPDATE_TAG = "UPDATE_TAG"
    CREATE_UNIT = "CREATE_UNIT"
    UPDATE_UNIT = "UPDATE_UNIT"

    # ---------------- LOTS ----------------
    CREATE_LOT = "CREATE_LOT"
    UPDATE_LOT = "UPDATE_LOT"
    ARCHIVE_LOT = "ARCHIVE_LOT"
    UNARCHIVE_LOT = "UNARCHIVE_LOT"
    DELETE_LOT = "DELETE_LOT"
    LOT_MOVEMENT = "LOT_MOVEMENT"

    # ---------------- ANALYTICS ----------------
    SET_LOW_STOCK_THRESHOLD = "SET_LOW_STOCK_THRESHOLD"
    DELETE_LOW_STOCK_THRESHOLD = "DELETE_LOW_STOCK_THRESHOLD"
