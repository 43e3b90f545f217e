"""Render notification titles, bodies and push data for each notification type."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from shopnotify.notifications.contracts import NotificationContent, NotificationType, NotifyDecision, UserProfile

CURRENCY_SYMBOL = "₱"
DEFAULT_CHAT_TEXT = "New message"
PHOTO_PLACEHOLDER = "[Photo]"


class OrderStatus(Enum):
  """Order lifecycle states that have dedicated customer messaging."""

  PAYMENT_RECEIVED = "payment_received"
  SHIPPED = "shipped"
  RECEIVED = "received"
  PROCESSING = "processing"
  COMPLETED = "completed"
  DELIVERED = "delivered"
  UNRECOGNIZED = "unrecognized"

  @classmethod
  def parse(cls, raw: Any) -> OrderStatus:
    """Map a stored status (any casing) to a lifecycle state."""
    return _STATUS_ALIASES.get(str(raw or "").strip().lower(), cls.UNRECOGNIZED)


# Keys are lowercased stored values; several legacy values share one state.
_STATUS_ALIASES: dict[str, OrderStatus] = {
  "paid": OrderStatus.PAYMENT_RECEIVED,
  "pending_payment": OrderStatus.PAYMENT_RECEIVED,
  "shipped": OrderStatus.SHIPPED,
  "for_installation": OrderStatus.SHIPPED,
  "awaiting_installation": OrderStatus.RECEIVED,
  "awaiting installation": OrderStatus.RECEIVED,
  "to_receive": OrderStatus.RECEIVED,
  "processing": OrderStatus.PROCESSING,
  "completed": OrderStatus.COMPLETED,
  "delivered": OrderStatus.DELIVERED,
}

_STATUS_MESSAGES: dict[OrderStatus, tuple[str, str]] = {
  OrderStatus.PAYMENT_RECEIVED: ("Payment Received", "Your {product} payment has been received. We are preparing your order."),
  OrderStatus.SHIPPED: ("Order Shipped", "Your {product} has been shipped. Track your delivery."),
  OrderStatus.RECEIVED: ("Order Received", "Your {product} has been received. Installation will be scheduled soon."),
  OrderStatus.PROCESSING: ("Order Status Updated", "Your {product} is now processing."),
  OrderStatus.COMPLETED: ("Order Completed", "Your {product} has been completed. Thank you for your purchase!"),
  OrderStatus.DELIVERED: ("Order Delivered", "Your {product} has been delivered."),
  OrderStatus.UNRECOGNIZED: ("Order Status Updated", "Your {product} is now {status}."),
}


def to_amount(value: Any) -> Decimal:
  """Coerce a stored money value to Decimal; anything malformed counts as zero."""
  # bool is an int subclass; a flag is never a price.
  if value is None or isinstance(value, bool):
    return Decimal(0)
  # Convert via str() so floats keep their shortest repr.
  try:
    amount = Decimal(str(value).strip())
  except (InvalidOperation, ValueError):
    return Decimal(0)
  if not amount.is_finite():
    return Decimal(0)
  return amount


def format_currency(value: Any) -> str:
  """Format an amount as `₱1234.50`: two decimals, no grouping."""
  return f"{CURRENCY_SYMBOL}{to_amount(value):.2f}"


def _text(record: Mapping[str, Any], *keys: str, default: str) -> str:
  """First non-empty value among `keys`, as a string, else `default`."""
  for key in keys:
    value = record.get(key)
    if value:
      return str(value)
  return default


def order_product_name(order: Mapping[str, Any]) -> str:
  """Product named on the order, else on its first line item, else `order`."""
  product = order.get("productName")
  if product:
    return str(product)
  # Multi-item orders are named after their first line item.
  items = order.get("items")
  if isinstance(items, list | tuple) and items and isinstance(items[0], Mapping):
    return _text(items[0], "productName", default="order")
  return "order"


def render_order_status(status: Any, product: str) -> tuple[str, str]:
  """Return (title, body) for an order that moved to `status`."""
  # Unrecognized statuses echo the raw value, not the normalized one.
  title, body_template = _STATUS_MESSAGES[OrderStatus.parse(status)]
  return title, body_template.format(product=product, status=status)


def render(decision: NotifyDecision, *, sender: UserProfile | None = None) -> NotificationContent:
  """Render content for `decision`; `sender` is only consulted for chat messages."""
  event = decision.event
  record = event.after
  kind = decision.notification_type

  if kind is NotificationType.NEW_QUOTATION:
    customer = _text(record, "customerName", default="Customer")
    product = _text(record, "productName", default="product")
    return NotificationContent(
      title="New Quotation Request",
      body=f"New quotation request from {customer} for {product}",
      data={"type": kind.value, "quotationId": event.entity_id},
    )

  if kind is NotificationType.NEW_ORDER:
    customer = _text(record, "customerName", "fullName", default="New order")
    short_id = event.entity_id[:8].upper()
    return NotificationContent(
      title="New Order Placed",
      body=f"Order #{short_id} from {customer} - {format_currency(record.get('totalPrice'))}",
      data={"type": kind.value, "orderId": event.entity_id},
    )

  if kind is NotificationType.CHAT:
    title = sender.display_name if sender is not None and sender.display_name else DEFAULT_CHAT_TEXT
    if record.get("type") == "image":
      body = PHOTO_PLACEHOLDER
    else:
      body = _text(record, "message", "text", default=DEFAULT_CHAT_TEXT)
    # Room id comes from the document path; older records also store it inline.
    chat_room_id = event.params.get("chatRoomId") or str(record.get("chatRoomId") or "")
    return NotificationContent(title=title, body=body, data={"type": kind.value, "chatRoomId": chat_room_id, "messageId": event.entity_id})

  if kind is NotificationType.ORDER_STATUS_UPDATE:
    status = record.get("status")
    title, body = render_order_status(status, order_product_name(record))
    return NotificationContent(title=title, body=body, data={"type": kind.value, "orderId": event.entity_id, "status": str(status)})

  if kind is NotificationType.QUOTATION_UPDATED:
    product = _text(record, "productName", default="product")
    return NotificationContent(
      title="Quotation Ready",
      body=f"Your quotation for {product} is {format_currency(record.get('adminTotalPrice'))}",
      data={"type": kind.value, "quotationId": event.entity_id},
    )

  raise ValueError(f"Unsupported notification type: {kind}")
