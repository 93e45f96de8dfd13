"""
Owner notifications for assignment and status events

Each notifier formats a title/body and hands it to notify_owner. Callers
treat delivery as fire-and-forget and must not let a failure here undo
the mutation that triggered it.
"""

import logging
import httpx

from scheduler import config

logger = logging.getLogger(__name__)

async def notify_owner(title: str, content: str) -> bool:
    """Deliver a notification to the owner channel (webhook)"""
    if not config.NOTIFY_WEBHOOK_URL:
        logger.info(f"Owner notification (no channel configured): {title}")
        return False
    
    async with httpx.AsyncClient(timeout=config.NOTIFY_TIMEOUT_SECONDS) as client:
        response = await client.post(
            config.NOTIFY_WEBHOOK_URL,
            json={"title": title, "content": content}
        )
        response.raise_for_status()
    
    logger.info(f"Owner notified: {title}")
    return True

async def notify_order_assigned(
    order_number: str,
    installer_name: str,
    customer_name: str,
    scheduled_date: str,
    scheduled_time: str
) -> bool:
    """Send notification when an order is assigned to an installer"""
    title = f"Order Assigned: {order_number}"
    content = (
        f"Order {order_number} for customer {customer_name} has been assigned to "
        f"{installer_name} on {scheduled_date} at {scheduled_time}."
    )
    return await notify_owner(title, content)

async def notify_order_completed(order_number: str, installer_name: str, customer_name: str) -> bool:
    """Send notification when an order is completed"""
    title = f"Order Completed: {order_number}"
    content = f"Order {order_number} for customer {customer_name} has been completed by {installer_name}."
    return await notify_owner(title, content)

async def notify_order_rescheduled(
    order_number: str,
    installer_name: str,
    customer_name: str,
    reason: str,
    new_date: str,
    new_time: str
) -> bool:
    """Send notification when an order is rescheduled"""
    reason_text = reason.replace("_", " ")
    title = f"Order Rescheduled: {order_number}"
    content = (
        f"Order {order_number} for customer {customer_name} has been rescheduled by "
        f"{installer_name} due to {reason_text}. New schedule: {new_date} at {new_time}."
    )
    return await notify_owner(title, content)

async def notify_order_withdrawn(order_number: str, customer_name: str) -> bool:
    """Send notification when an order is withdrawn"""
    title = f"Order Withdrawn: {order_number}"
    content = f"Order {order_number} for customer {customer_name} has been withdrawn (customer not interested)."
    return await notify_owner(title, content)
