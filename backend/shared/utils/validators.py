"""
Shared validators for input normalization.

They raise ValidationError (HTTP 400) so services can call them directly.
"""

from decimal import Decimal, InvalidOperation

from shared.config.constants import Limits
from shared.utils.exceptions import ValidationError


def normalize_name(name: str | None, field: str = "diner_name") -> str:
    """Trim a diner/participant name and reject blank or oversized values."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required", field=field)
    if len(cleaned) > Limits.MAX_NAME_LENGTH:
        raise ValidationError(
            f"{field} cannot exceed {Limits.MAX_NAME_LENGTH} characters",
            field=field,
        )
    return cleaned


def normalize_participants(participants: list[str] | None) -> list[str]:
    """
    Trim, drop blanks and de-duplicate participant names.

    The result is sorted so that two requests naming the same diners in a
    different order describe the same agreement.
    """
    cleaned = {p.strip() for p in (participants or []) if p and p.strip()}
    if not cleaned:
        raise ValidationError("Split bill requires at least one participant", field="participants")
    if len(cleaned) > Limits.MAX_PARTICIPANTS:
        raise ValidationError(
            f"Split bill cannot have more than {Limits.MAX_PARTICIPANTS} participants",
            field="participants",
        )
    for name in cleaned:
        if len(name) > Limits.MAX_NAME_LENGTH:
            raise ValidationError(
                f"Participant name cannot exceed {Limits.MAX_NAME_LENGTH} characters",
                field="participants",
            )
    return sorted(cleaned)


def validate_quantity(quantity: int, min_val: int = Limits.MIN_QUANTITY, max_val: int = Limits.MAX_QUANTITY) -> int:
    """Validate quantity is within the accepted range."""
    if quantity < min_val:
        raise ValidationError(f"Minimum quantity is {min_val}", field="quantity", value=quantity)
    if quantity > max_val:
        raise ValidationError(f"Maximum quantity is {max_val}", field="quantity", value=quantity)
    return quantity


def validate_split_count(split_count: int) -> int:
    """Number of portions an item is divided into: 1 to MAX_SPLIT_COUNT."""
    if split_count < 1:
        raise ValidationError("split_count must be positive", field="split_count", value=split_count)
    if split_count > Limits.MAX_SPLIT_COUNT:
        raise ValidationError(
            f"split_count cannot exceed {Limits.MAX_SPLIT_COUNT}",
            field="split_count",
            value=split_count,
        )
    return split_count


def validate_positive_amount(amount: Decimal | int | float | str, field: str) -> Decimal:
    """Parse an amount as Decimal and require it to be strictly positive."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field, value=str(amount))
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field} must be positive", field=field, value=str(amount))
    return value


def validate_notes(notes: str | None) -> str | None:
    """Trim notes; empty notes become None."""
    if notes is None:
        return None
    cleaned = notes.strip()
    if len(cleaned) > Limits.MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes cannot exceed {Limits.MAX_NOTES_LENGTH} characters",
            field="notes",
        )
    return cleaned or None
