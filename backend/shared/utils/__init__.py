"""
Utilities module: Exceptions, validators, money helpers, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ValidationError,
    ConflictError,
    PersistenceError,
)
from shared.utils.validators import (
    normalize_name,
    normalize_participants,
    validate_quantity,
)
from shared.utils.money import round_money, money_equal
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "PersistenceError",
    # validators
    "normalize_name",
    "normalize_participants",
    "validate_quantity",
    # money
    "round_money",
    "money_equal",
    # schemas
    "ErrorResponse",
]
