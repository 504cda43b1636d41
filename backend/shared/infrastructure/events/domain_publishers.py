"""
Domain-Specific Event Publishing.

EventPublisher knows which channels each domain event goes to. Routers
schedule its methods as FastAPI background tasks after the database commit,
so a Redis outage never affects the outcome of a request.
"""

from __future__ import annotations

from typing import Any

from shared.config.settings import settings
from shared.config.logging import get_logger
from .event_types import (
    CART_CLEARED,
    ORDERS_CONFIRMED,
    ORDERS_PLACED,
    ORDER_STATUS_CHANGED,
    PAYMENT_READY,
    PAYMENT_COMPLETED,
    PAYMENT_REQUESTED,
    SPLIT_BILL_RESOLVED,
)
from .event_schema import Event
from .channels import channel_table_session, channel_kitchen, channel_staff
from .redis_pool import get_redis_pool
from .publisher import publish_event

logger = get_logger(__name__)


def _actor(diner_name: str | None = None, role: str = "DINER") -> dict[str, Any]:
    return {"diner_name": diner_name, "role": role}


class EventPublisher:
    """
    Publishes domain events to Redis.

    Every public method is fire-and-forget: failures are logged and dropped.
    """

    async def publish(self, event: Event, channels: list[str]) -> None:
        """Send one event to each channel."""
        if not settings.events_enabled:
            logger.debug("Events disabled, dropping", event_type=event.type, session_id=event.session_id)
            return

        try:
            redis_client = await get_redis_pool()
            for channel in channels:
                await publish_event(redis_client, channel, event)
            logger.info(f"{event.type} published", session_id=event.session_id, channels=channels)
        except Exception as e:
            logger.error(
                f"Failed to publish {event.type} event",
                session_id=event.session_id,
                channels=channels,
                error=str(e),
            )

    # =========================================================================
    # Cart
    # =========================================================================

    async def cart_event(
        self,
        event_type: str,
        session_id: int,
        entity: dict[str, Any],
        diner_name: str | None = None,
    ) -> None:
        """Cart changes only concern the diners at the table."""
        event = Event(
            type=event_type,
            session_id=session_id,
            entity=entity,
            actor=_actor(diner_name),
        )
        await self.publish(event, [channel_table_session(session_id)])

    async def cart_cleared(self, session_id: int, removed_count: int) -> None:
        await self.cart_event(CART_CLEARED, session_id, {"removed_count": removed_count})

    # =========================================================================
    # Split bills
    # =========================================================================

    async def split_resolved(
        self,
        session_id: int,
        split_bill: dict[str, Any],
        created: bool,
        linked_count: int,
    ) -> None:
        event = Event(
            type=SPLIT_BILL_RESOLVED,
            session_id=session_id,
            entity={**split_bill, "created": created, "linked_count": linked_count},
        )
        await self.publish(event, [channel_table_session(session_id)])

    # =========================================================================
    # Orders
    # =========================================================================

    async def orders_placed(self, session_id: int, diner_name: str, order_ids: list[int]) -> None:
        event = Event(
            type=ORDERS_PLACED,
            session_id=session_id,
            entity={"order_ids": order_ids},
            actor=_actor(diner_name),
        )
        await self.publish(event, [channel_table_session(session_id)])

    async def orders_confirmed(self, session_id: int, order_ids: list[int]) -> None:
        """New kitchen work: diners, kitchen display and waiters all need it."""
        event = Event(
            type=ORDERS_CONFIRMED,
            session_id=session_id,
            entity={"order_ids": order_ids, "count": len(order_ids)},
        )
        await self.publish(
            event,
            [channel_table_session(session_id), channel_kitchen(), channel_staff()],
        )

    async def order_status_changed(
        self,
        session_id: int,
        order_id: int,
        from_status: str,
        to_status: str,
    ) -> None:
        event = Event(
            type=ORDER_STATUS_CHANGED,
            session_id=session_id,
            entity={"order_id": order_id, "from_status": from_status, "to_status": to_status},
            actor=_actor(role="KITCHEN"),
        )
        await self.publish(
            event,
            [channel_table_session(session_id), channel_kitchen(), channel_staff()],
        )

    # =========================================================================
    # Billing
    # =========================================================================

    async def payment_ready(self, session_id: int) -> None:
        event = Event(type=PAYMENT_READY, session_id=session_id)
        await self.publish(event, [channel_table_session(session_id), channel_staff()])

    async def payment_requested(self, session_id: int, payment_request: dict[str, Any]) -> None:
        event = Event(
            type=PAYMENT_REQUESTED,
            session_id=session_id,
            entity=payment_request,
            actor=_actor(payment_request.get("diner_name")),
        )
        await self.publish(event, [channel_table_session(session_id), channel_staff()])

    async def payment_completed(
        self,
        session_id: int,
        payment_request: dict[str, Any],
        session_ended: bool,
    ) -> None:
        event = Event(
            type=PAYMENT_COMPLETED,
            session_id=session_id,
            entity={**payment_request, "session_ended": session_ended},
            actor=_actor(payment_request.get("completed_by"), role="WAITER"),
        )
        await self.publish(event, [channel_table_session(session_id), channel_staff()])


_event_publisher = EventPublisher()


def get_event_publisher() -> EventPublisher:
    """FastAPI dependency returning the process-wide publisher."""
    return _event_publisher
