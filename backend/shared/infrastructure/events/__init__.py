"""
Event System for Real-time Notifications via Redis pub/sub.

Modules:
- event_types.py: Event type constants
- event_schema.py: Event dataclass with validation
- channels.py: Channel naming functions
- redis_pool.py: Connection pool management and health check
- publisher.py: Core publish_event with retry
- domain_publishers.py: EventPublisher routing domain events to channels
"""

# =============================================================================
# Event Types
# =============================================================================

from .event_types import (
    CART_ITEM_ADDED,
    CART_ITEM_UPDATED,
    CART_ITEM_REMOVED,
    CART_CLEARED,
    SPLIT_BILL_RESOLVED,
    ORDERS_PLACED,
    ORDERS_CONFIRMED,
    ORDER_STATUS_CHANGED,
    PAYMENT_READY,
    PAYMENT_REQUESTED,
    PAYMENT_COMPLETED,
    MAX_EVENT_SIZE,
)

# =============================================================================
# Event Schema and Channels
# =============================================================================

from .event_schema import Event
from .channels import channel_table_session, channel_kitchen, channel_staff

# =============================================================================
# Redis Pool
# =============================================================================

from .redis_pool import get_redis_pool, close_redis_pool, check_redis_health

# =============================================================================
# Publishing
# =============================================================================

from .publisher import publish_event, calculate_retry_delay_with_jitter
from .domain_publishers import EventPublisher, get_event_publisher

__all__ = [
    # Event Types
    "CART_ITEM_ADDED",
    "CART_ITEM_UPDATED",
    "CART_ITEM_REMOVED",
    "CART_CLEARED",
    "SPLIT_BILL_RESOLVED",
    "ORDERS_PLACED",
    "ORDERS_CONFIRMED",
    "ORDER_STATUS_CHANGED",
    "PAYMENT_READY",
    "PAYMENT_REQUESTED",
    "PAYMENT_COMPLETED",
    "MAX_EVENT_SIZE",
    # Event Schema and Channels
    "Event",
    "channel_table_session",
    "channel_kitchen",
    "channel_staff",
    # Redis Pool
    "get_redis_pool",
    "close_redis_pool",
    "check_redis_health",
    # Publishing
    "publish_event",
    "calculate_retry_delay_with_jitter",
    "EventPublisher",
    "get_event_publisher",
]
