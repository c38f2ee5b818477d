"""
Webhook notifications (IFTTT, Zapier and the like).
"""
import logging
import threading
from typing import Any, Dict, List

import requests

from .store import NotifyConfig

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10


def build_message(deals: List[Dict[str, Any]]) -> str:
    preview = ", ".join(f"{d.get('title', '')} - {d.get('price_text', '')}" for d in deals[:3])
    return f"Found {len(deals)} listing(s): {preview}"


def post_webhook(url: str, payload: Dict[str, Any]) -> bool:
    try:
        response = requests.post(url, json=payload, timeout=WEBHOOK_TIMEOUT)
    except requests.RequestException as e:
        logger.info(f"Webhook failed: {e}")
        return False
    if not response.ok:
        logger.info(f"Webhook failed: HTTP {response.status_code}")
    return response.ok


def send_notification(config: NotifyConfig, deals: List[Dict[str, Any]]) -> bool:
    """
    Fire the webhook in a background thread.

    Returns False without sending when notifications are disabled, no URL is
    configured or there is nothing to report. Delivery errors are only logged.
    """
    if not config.enabled or not config.webhook_url or not deals:
        return False

    payload = {
        "phone": config.phone_number,
        "message": build_message(deals),
        "deals": deals,
    }
    threading.Thread(target=post_webhook, args=(config.webhook_url, payload), daemon=True).start()
    return True
