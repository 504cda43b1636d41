"""
HTTP-aware domain errors.

Services raise these and FastAPI renders them as ``{"detail": ...}`` with
the class's status code. Every error is logged once, where it is raised,
with the keyword context given to it:

    raise InvalidTransitionError("order", "waiting", "ready", order_id=10)

Status codes:
    400  ValidationError, InvalidStateError, InvalidTransitionError
    404  SessionNotFoundError, MenuItemNotFoundError, OrderItemNotFoundError,
         SplitBillNotFoundError
    409  ConflictError (lost a race twice, retry)
    503  PersistenceError, SplitLinkageError (nothing or only part committed)
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    http_status = status.HTTP_400_BAD_REQUEST
    log_level = "warning"

    def __init__(self, detail: str, **context: Any):
        self.context = context
        getattr(logger, self.log_level)(detail, status_code=self.http_status, error_type=type(self).__name__, **context)
        super().__init__(status_code=self.http_status, detail=detail)


# =============================================================================
# 404
# =============================================================================


class NotFoundError(AppException):
    http_status = status.HTTP_404_NOT_FOUND
    entity = "Entity"

    def __init__(self, entity_id: int | str | None = None, **context: Any):
        self.entity_id = entity_id
        detail = f"{self.entity} {entity_id} not found" if entity_id is not None else f"{self.entity} not found"
        super().__init__(detail, entity_id=entity_id, **context)


class SessionNotFoundError(NotFoundError):
    entity = "Session"


class MenuItemNotFoundError(NotFoundError):
    """Unknown menu item, or one that is no longer available."""

    entity = "Menu item"


class OrderItemNotFoundError(NotFoundError):
    entity = "Order"


class SplitBillNotFoundError(NotFoundError):
    entity = "Split bill"


class PaymentRequestNotFoundError(NotFoundError):
    entity = "Payment request"


# =============================================================================
# 400
# =============================================================================


class ValidationError(AppException):
    """Bad input. Pass ``field=`` and ``value=`` so the log says what was rejected."""


class InvalidStateError(ValidationError):
    """The entity exists but its state does not allow the operation."""

    def __init__(self, entity: str, current_state: str, expected_states: list[str] | None = None, **context: Any):
        detail = f"{entity} is {current_state}"
        if expected_states:
            detail += f", expected {' or '.join(expected_states)}"
        super().__init__(detail, entity=entity, current_state=current_state, **context)


class InvalidTransitionError(ValidationError):
    """A status move that skips, repeats or reverses a step."""

    def __init__(self, entity: str, from_status: str, to_status: str, **context: Any):
        super().__init__(
            f"Cannot move {entity} from '{from_status}' to '{to_status}'",
            entity=entity,
            from_status=from_status,
            to_status=to_status,
            **context,
        )


# =============================================================================
# 409
# =============================================================================


class ConflictError(AppException):
    """A concurrent writer won twice in a row. Safe to retry."""

    http_status = status.HTTP_409_CONFLICT


# =============================================================================
# 503
# =============================================================================


class PersistenceError(AppException):
    """The database failed; the transaction was rolled back."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    log_level = "error"

    def __init__(self, operation: str, **context: Any):
        self.operation = operation
        super().__init__(f"Database error while {operation}, please retry", operation=operation, **context)


class SplitLinkageError(PersistenceError):
    """
    The split bill is stored but shared lines could not be pointed at it.

    Resending the same split request reuses the stored agreement and runs
    only the linkage again.
    """

    def __init__(self, split_bill_id: int, **context: Any):
        self.split_bill_id = split_bill_id
        super().__init__(f"linking shared items to split bill {split_bill_id}", split_bill_id=split_bill_id, **context)
