"""
Notification Parser.

Decodes the raw body of an Adyen webhook delivery into notification
items. The body is taken as bytes exactly as received.
"""

import json
import logging
from typing import List, Union

from errors import MalformedNotification
from models.notification import NotificationItem

logger = logging.getLogger(__name__)


def parse_notification(body: Union[bytes, str]) -> List[NotificationItem]:
    """
    Parse a webhook body into notification items.

    Expected shape::

        {"live": "false",
         "notificationItems": [{"NotificationRequestItem": {...}}, ...]}

    Args:
        body: Raw request body (UTF-8 JSON)

    Returns:
        Notification items in delivery order

    Raises:
        MalformedNotification: If the body is not a notification document
    """
    if isinstance(body, bytes):
        try:
            body = body.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedNotification(f"Notification body is not UTF-8: {e}") from e

    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedNotification(f"Notification body is not JSON: {e}") from e

    if not isinstance(document, dict):
        raise MalformedNotification("Notification body must be a JSON object")

    containers = document.get('notificationItems')
    if not isinstance(containers, list):
        raise MalformedNotification("Notification body has no notificationItems")

    items = []
    for index, container in enumerate(containers):
        data = container.get('NotificationRequestItem') if isinstance(container, dict) else None
        if not isinstance(data, dict):
            logger.warning(f"Skipping notification item {index}: no NotificationRequestItem")
            continue
        items.append(NotificationItem.from_dict(data))

    logger.debug(f"Parsed {len(items)} notification item(s)")
    return items


def first_merchant_reference(body: Union[bytes, str]) -> str:
    """
    Merchant reference of the first item in a delivery.

    Raises:
        MalformedNotification: If the body has no items
    """
    items = parse_notification(body)
    if not items:
        raise MalformedNotification("Notification body contains no items")
    return items[0].merchant_reference
