"""
Event Type Constants.

Every notification published on Redis carries one of these types.
"""

# =============================================================================
# Cart events (real-time sync between diners at a table)
# =============================================================================

CART_ITEM_ADDED = "CART_ITEM_ADDED"      # New line, or coalesced into an existing one
CART_ITEM_UPDATED = "CART_ITEM_UPDATED"  # Quantity changed
CART_ITEM_REMOVED = "CART_ITEM_REMOVED"  # Line removed (explicitly or quantity <= 0)
CART_CLEARED = "CART_CLEARED"

# =============================================================================
# Split bill events
# =============================================================================

SPLIT_BILL_RESOLVED = "SPLIT_BILL_RESOLVED"  # Created, reused or superseded, then linked

# =============================================================================
# Order lifecycle events
# Flow: cart → placed → waiting → preparing → ready → served
# =============================================================================

ORDERS_PLACED = "ORDERS_PLACED"
ORDERS_CONFIRMED = "ORDERS_CONFIRMED"  # Pending lines promoted to the kitchen
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"

# =============================================================================
# Billing events
# =============================================================================

PAYMENT_READY = "PAYMENT_READY"  # Every confirmed order of the session is served
PAYMENT_REQUESTED = "PAYMENT_REQUESTED"
PAYMENT_COMPLETED = "PAYMENT_COMPLETED"  # Collected by staff; may end the session

# =============================================================================
# Size limits
# =============================================================================

# Maximum serialized event size in bytes
MAX_EVENT_SIZE = 64 * 1024
