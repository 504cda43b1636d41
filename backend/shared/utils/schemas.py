"""
Shared Pydantic schemas used across the application.

Request bodies only carry structural constraints; business rules (positive
prices, quantity limits, participant lists) are enforced by the services so
they surface as 400 errors with a readable message.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from shared.utils.money import round_money


# =============================================================================
# Common Types
# =============================================================================

OrderStatusLiteral = Literal["cart", "placed", "waiting", "preparing", "ready", "served"]
SessionStatusLiteral = Literal["active", "ended"]
SplitStatusLiteral = Literal["active", "superseded"]
PaymentTypeLiteral = Literal["individual", "table"]
PaymentRequestStatusLiteral = Literal["pending", "completed"]

# Money is kept as Decimal internally and rendered rounded to cents
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(round_money(v)), return_type=float),
]


class ErrorResponse(BaseModel):
    """Error body produced by HTTPException handlers."""

    detail: str


# =============================================================================
# Session Schemas
# =============================================================================


class CreateSessionRequest(BaseModel):
    """Open a table session, optionally registering diners up front."""

    table_code: str = Field(min_length=1, max_length=20)
    diners: list[str] = Field(default_factory=list)


class AddDinerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class DinerOutput(BaseModel):
    """Output for a registered diner."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    joined_at: datetime


class SessionOutput(BaseModel):
    """Table session with its diners."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    table_code: str
    status: SessionStatusLiteral
    cart_version: int
    created_at: datetime
    ended_at: datetime | None = None
    diners: list[DinerOutput] = Field(default_factory=list)


# =============================================================================
# Menu Schemas
# =============================================================================


class MenuItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Money
    is_available: bool


# =============================================================================
# Cart Schemas
# =============================================================================


class CartAddRequest(BaseModel):
    """Add one unit of a menu item to a diner's cart."""

    session_id: int
    diner_name: str = Field(max_length=100)
    menu_item_id: int
    notes: str | None = Field(default=None, max_length=500)
    is_shared: bool = False
    is_takeaway: bool = False
    # Client-side line total, checked against the catalog price for diagnostics only
    price: Decimal | None = None


class CartUpdateQuantityRequest(BaseModel):
    """Set the quantity of a cart line. Zero or less removes the line."""

    cart_item_id: int
    quantity: int


class CartRemoveRequest(BaseModel):
    cart_item_id: int


class CartClearRequest(BaseModel):
    session_id: int


def _line_fields(line) -> dict:
    """Fields shared by cart line and order outputs, read from an OrderItem row."""
    return {
        "id": line.id,
        "session_id": line.session_id,
        "menu_item_id": line.menu_item_id,
        "menu_item_name": line.menu_item.name,
        "diner_name": line.diner_name,
        "quantity": line.quantity,
        "notes": line.notes,
        "is_shared": line.is_shared,
        "is_takeaway": line.is_takeaway,
        "status": line.status,
        "unit_price": line.unit_price,
        "line_total": line.unit_price * line.quantity,
        "split_bill_id": line.split_bill_id,
    }


class CartItemOutput(BaseModel):
    """A pending cart line or a confirmed order (same row, different status)."""

    id: int
    session_id: int
    menu_item_id: int
    menu_item_name: str
    diner_name: str | None
    quantity: int
    notes: str | None = None
    is_shared: bool
    is_takeaway: bool
    status: OrderStatusLiteral
    unit_price: Money
    line_total: Money
    split_bill_id: int | None = None

    @classmethod
    def from_line(cls, line) -> "CartItemOutput":
        return cls(**_line_fields(line))


class CartAddResponse(BaseModel):
    item: CartItemOutput
    created: bool  # False when the add was coalesced into an existing line
    cart_version: int


class CartUpdateResponse(BaseModel):
    item: CartItemOutput | None
    removed: bool
    cart_version: int


class CartRemoveResponse(BaseModel):
    removed_id: int
    cart_version: int


class CartClearResponse(BaseModel):
    removed_count: int
    cart_version: int


class CartOutput(BaseModel):
    """Pending lines of a session."""

    session_id: int
    items: list[CartItemOutput]
    version: int


# =============================================================================
# Split Bill Schemas
# =============================================================================


class SplitCreateRequest(BaseModel):
    """Divide a shared menu item among participants."""

    session_id: int
    menu_item_id: int
    original_price: Decimal
    split_count: int
    participants: list[str]


class SplitBillOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: int
    menu_item_id: int
    original_price: Money
    split_count: int
    split_price: Money
    participants: list[str]
    status: SplitStatusLiteral
    is_current: bool
    created_at: datetime


class SplitResolutionOutput(BaseModel):
    split_bill: SplitBillOutput
    created: bool  # False on a reuse of the current agreement
    linked_count: int


# =============================================================================
# Order Schemas
# =============================================================================


class OrderConfirmRequest(BaseModel):
    session_id: int


class OrderPlaceRequest(BaseModel):
    session_id: int
    diner_name: str = Field(max_length=100)


class OrderAdvanceRequest(BaseModel):
    """Kitchen moves an order one step forward."""

    order_id: int
    status: str


class ConfirmResponse(BaseModel):
    session_id: int
    confirmed_order_ids: list[int]
    count: int


class PlaceResponse(BaseModel):
    session_id: int
    diner_name: str
    placed_order_ids: list[int]


class OrderOutput(CartItemOutput):
    """Confirmed order with its split agreement, if any."""

    confirmed_at: datetime | None = None
    split_price: Money | None = None
    split_participants: list[str] = Field(default_factory=list)
    table_code: str | None = None

    @classmethod
    def from_line(cls, line) -> "OrderOutput":
        split = line.split_bill
        return cls(
            **_line_fields(line),
            confirmed_at=line.confirmed_at,
            split_price=split.split_price if split is not None else None,
            split_participants=list(split.participants) if split is not None else [],
            table_code=line.session.table_code if line.session is not None else None,
        )


class AdvanceResponse(BaseModel):
    order: OrderOutput
    payment_ready: bool


# =============================================================================
# Bill Schemas
# =============================================================================


class BillTotalsOutput(BaseModel):
    subtotal: Money
    vat: Money
    total: Money


class MyShareOutput(BillTotalsOutput):
    session_id: int
    diner_name: str


class TableTotalOutput(BillTotalsOutput):
    session_id: int
    order_count: int


class BillLineOutput(BaseModel):
    """One order as seen from a single diner's bill."""

    order_id: int
    menu_item_name: str
    quantity: int
    amount: Money
    is_split: bool
    split_count: int | None = None


class DinerBillOutput(BaseModel):
    """Per-diner breakdown entry. diner_name is None for unassigned lines."""

    diner_name: str | None
    personal_items: list[BillLineOutput]
    shared_items: list[BillLineOutput]
    personal_subtotal: Money
    shared_subtotal: Money
    subtotal: Money
    vat: Money
    total: Money


class PerDinerOutput(BaseModel):
    session_id: int
    diners: list[DinerBillOutput]
    table: BillTotalsOutput


class PaymentRequestBody(BaseModel):
    session_id: int
    diner_name: str = Field(max_length=100)
    tip_amount: Decimal = Decimal("0")


class PaymentRequestOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: int
    diner_name: str
    payment_type: PaymentTypeLiteral
    subtotal: Money
    vat: Money
    tip: Money
    final_total: Money
    status: PaymentRequestStatusLiteral
    created_at: datetime
    payment_method: str | None = None
    completed_by: str | None = None
    completed_at: datetime | None = None


class PaymentCompleteBody(BaseModel):
    payment_request_id: int
    payment_method: str  # cash, card, qr_code or digital
    completed_by: str = Field(max_length=100)


class PaymentCompleteResponse(BaseModel):
    payment_request: PaymentRequestOutput
    already_completed: bool
    session_ended: bool


class DinerPaymentOutput(BaseModel):
    diner_name: str
    amount_due: Money
    paid: bool


class PaymentStatusOutput(BaseModel):
    """Payment progress of a table: who has paid and who still owes."""

    session_id: int
    session_status: SessionStatusLiteral
    diners: list[DinerPaymentOutput]
    paid_diners: int
    remaining_diners: int
    all_paid: bool
    latest_request: PaymentRequestOutput | None = None
