from decimal import Decimal

from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


# =====================================================
# LEDGER / AGGREGATOR TAXONOMY
# =====================================================
class ValidationError(AppException):
    """Bad input shape or value (quantity, tags, unit, archive threshold)."""

    def __init__(self, message: str, field: str | None = None, **details):
        super().__init__(
            400,
            message,
            ErrorCode.VALIDATION_ERROR,
            {"field": field, **details},
        )
        self.field = field


class LockedError(AppException):
    """Mutation blocked because locked production batches reference the lot."""

    def __init__(self, lot_id: int, batch_ids: list[int]):
        super().__init__(
            409,
            f"Lot is used in locked production batch(es): {batch_ids}",
            ErrorCode.LOT_LOCKED,
            {"lot_id": lot_id, "batch_ids": list(batch_ids)},
        )
        self.lot_id = lot_id
        self.batch_ids = list(batch_ids)


class InsufficientQuantityError(AppException):
    def __init__(self, lot_id: int, requested: Decimal, available: Decimal):
        super().__init__(
            409,
            f"Insufficient quantity: requested {requested}, available {available}",
            ErrorCode.INSUFFICIENT_QUANTITY,
            {
                "lot_id": lot_id,
                "requested": str(requested),
                "available": str(available),
            },
        )
        self.lot_id = lot_id
        self.requested = requested
        self.available = available


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id):
        super().__init__(
            404,
            f"{entity} not found",
            ErrorCode.NOT_FOUND,
            {"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(AppException):
    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.CONFLICT, **details):
        super().__init__(409, message, error_code, details or None)


class StorageError(AppException):
    """Persistence failure. Only read-only analytics calls are safe to retry."""

    def __init__(self, message: str = "Storage unavailable", retryable: bool = False):
        super().__init__(
            503,
            message,
            ErrorCode.STORAGE_ERROR,
            {"retryable": retryable},
        )
        self.retryable = retryable
