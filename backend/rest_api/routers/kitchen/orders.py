"""
Kitchen router.
Order status progression and the queue shown on the kitchen display.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.infrastructure.events import EventPublisher, get_event_publisher
from shared.utils.schemas import AdvanceResponse, OrderAdvanceRequest, OrderOutput
from rest_api.services.domain import OrderService


router = APIRouter(prefix="/api", tags=["kitchen"])


@router.post("/orders/advance-status", response_model=AdvanceResponse)
def advance_order_status(
    body: OrderAdvanceRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> AdvanceResponse:
    """
    Move an order one step: waiting -> preparing -> ready -> served.

    Skipping a step, going back or repeating the current status is rejected
    with 400. When the last outstanding order of the table is served the
    response carries payment_ready=true and the table is notified.
    """
    change = OrderService(db).advance(body.order_id, body.status)
    order = change.order

    background_tasks.add_task(
        publisher.order_status_changed,
        order.session_id,
        order.id,
        change.from_status,
        order.status,
    )
    if change.payment_ready:
        background_tasks.add_task(publisher.payment_ready, order.session_id)

    return AdvanceResponse(order=OrderOutput.from_line(order), payment_ready=change.payment_ready)


@router.get("/kitchen/orders", response_model=list[OrderOutput])
def get_kitchen_queue(db: Session = Depends(get_db)) -> list[OrderOutput]:
    """
    Orders not yet served across all active tables, oldest confirmation first.
    Split orders carry their agreement so the kitchen can portion them.
    """
    return [OrderOutput.from_line(order) for order in OrderService(db).kitchen_queue()]
