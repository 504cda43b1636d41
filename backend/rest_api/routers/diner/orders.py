"""
Diner Orders Router.
Sends the table's cart to the kitchen and lists what has been sent.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import EventPublisher, get_event_publisher
from shared.utils.schemas import (
    ConfirmResponse,
    OrderConfirmRequest,
    OrderOutput,
    OrderPlaceRequest,
    PlaceResponse,
)
from rest_api.services.domain import OrderService


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/place", response_model=PlaceResponse)
def place_orders(
    body: OrderPlaceRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> PlaceResponse:
    """Mark a diner's cart as ready. Placed lines stay editable until confirmation."""
    diner_name = body.diner_name.strip()
    order_ids = OrderService(db).place(body.session_id, diner_name)

    if order_ids:
        background_tasks.add_task(publisher.orders_placed, body.session_id, diner_name, order_ids)
    return PlaceResponse(session_id=body.session_id, diner_name=diner_name, placed_order_ids=order_ids)


@router.post("/confirm", response_model=ConfirmResponse)
def confirm_orders(
    body: OrderConfirmRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> ConfirmResponse:
    """
    Send every pending line of the table to the kitchen in one step.

    An empty cart is not an error: the response simply lists no orders.
    """
    order_ids = OrderService(db).confirm(body.session_id)

    if order_ids:
        background_tasks.add_task(publisher.orders_confirmed, body.session_id, order_ids)
    return ConfirmResponse(session_id=body.session_id, confirmed_order_ids=order_ids, count=len(order_ids))


@router.get("/confirmed", response_model=list[OrderOutput])
def list_confirmed_orders(session_id: int, db: Session = Depends(get_db)) -> list[OrderOutput]:
    """Orders of a session already in the kitchen, most recent first."""
    return [OrderOutput.from_line(order) for order in OrderService(db).list_confirmed(session_id)]
