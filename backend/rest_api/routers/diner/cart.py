"""
Shared Cart Router.
Per-diner cart lines of a table session, synchronized to every diner at
the table through session notifications.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import (
    CART_ITEM_ADDED,
    CART_ITEM_REMOVED,
    CART_ITEM_UPDATED,
    EventPublisher,
    get_event_publisher,
)
from shared.security.rate_limit import limiter
from shared.utils.schemas import (
    CartAddRequest,
    CartAddResponse,
    CartClearRequest,
    CartClearResponse,
    CartItemOutput,
    CartOutput,
    CartRemoveRequest,
    CartRemoveResponse,
    CartUpdateQuantityRequest,
    CartUpdateResponse,
)
from rest_api.services.domain import CartService, SessionService


router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.post("/add", response_model=CartAddResponse)
@limiter.limit(settings.cart_rate_limit)
def add_to_cart(
    request: Request,
    body: CartAddRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> CartAddResponse:
    """
    Add one unit of a menu item to a diner's cart.

    If the diner already has the same item with the same shared/takeaway
    flags in the cart, that line's quantity is incremented instead.
    """
    change = CartService(db).add_item(
        session_id=body.session_id,
        diner_name=body.diner_name,
        menu_item_id=body.menu_item_id,
        notes=body.notes,
        is_shared=body.is_shared,
        is_takeaway=body.is_takeaway,
        client_price=body.price,
    )
    item = CartItemOutput.from_line(change.line)

    background_tasks.add_task(
        publisher.cart_event,
        event_type=CART_ITEM_ADDED if change.created else CART_ITEM_UPDATED,
        session_id=change.session_id,
        entity={**item.model_dump(), "cart_version": change.cart_version},
        diner_name=change.diner_name,
    )
    return CartAddResponse(item=item, created=change.created, cart_version=change.cart_version)


@router.post("/update-quantity", response_model=CartUpdateResponse)
@limiter.limit(settings.cart_rate_limit)
def update_cart_quantity(
    request: Request,
    body: CartUpdateQuantityRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> CartUpdateResponse:
    """
    Set the quantity of a pending line. Zero or less removes the line.
    Lines already sent to the kitchen cannot be changed.
    """
    change = CartService(db).update_quantity(body.cart_item_id, body.quantity)

    if change.line is None:
        background_tasks.add_task(
            publisher.cart_event,
            event_type=CART_ITEM_REMOVED,
            session_id=change.session_id,
            entity={"item_id": change.removed_id, "cart_version": change.cart_version},
            diner_name=change.diner_name,
        )
        return CartUpdateResponse(item=None, removed=True, cart_version=change.cart_version)

    item = CartItemOutput.from_line(change.line)
    background_tasks.add_task(
        publisher.cart_event,
        event_type=CART_ITEM_UPDATED,
        session_id=change.session_id,
        entity={**item.model_dump(), "cart_version": change.cart_version},
        diner_name=change.diner_name,
    )
    return CartUpdateResponse(item=item, removed=False, cart_version=change.cart_version)


@router.post("/remove", response_model=CartRemoveResponse)
@limiter.limit(settings.cart_rate_limit)
def remove_from_cart(
    request: Request,
    body: CartRemoveRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> CartRemoveResponse:
    """Remove a pending line from the cart."""
    change = CartService(db).remove_item(body.cart_item_id)

    background_tasks.add_task(
        publisher.cart_event,
        event_type=CART_ITEM_REMOVED,
        session_id=change.session_id,
        entity={"item_id": change.removed_id, "cart_version": change.cart_version},
        diner_name=change.diner_name,
    )
    return CartRemoveResponse(removed_id=change.removed_id, cart_version=change.cart_version)


@router.post("/clear", response_model=CartClearResponse)
def clear_cart(
    body: CartClearRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> CartClearResponse:
    """Remove every line still in the cart. Confirmed orders are not affected."""
    change = CartService(db).clear(body.session_id)

    background_tasks.add_task(publisher.cart_cleared, change.session_id, change.removed_count)
    return CartClearResponse(removed_count=change.removed_count, cart_version=change.cart_version)


@router.get("", response_model=CartOutput)
def get_cart(
    session_id: int,
    diner_name: str | None = None,
    db: Session = Depends(get_db),
) -> CartOutput:
    """
    Pending lines of a session (cart and placed), optionally for one diner.
    The version lets clients detect a stale local copy.
    """
    lines = CartService(db).list_items(session_id, diner_name)
    session = SessionService(db).get(session_id)
    return CartOutput(
        session_id=session_id,
        items=[CartItemOutput.from_line(line) for line in lines],
        version=session.cart_version,
    )
