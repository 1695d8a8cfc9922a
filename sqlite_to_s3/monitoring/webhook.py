"""Best-effort webhook notifications."""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10


class WebhookNotifier:
    """Sends a POST request after a successful backup."""

    def __init__(self, timeout: float = WEBHOOK_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def notify(self, url: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        """
        Trigger the webhook once.

        Failures are logged and never raised.

        Args:
            url: Webhook URL
            payload: Optional JSON body

        Returns:
            bool: True if the webhook answered with a success status
        """
        logger.info("Triggering POST webhook: %s", url)
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Webhook trigger failed: %s", e)
            return False

        logger.info("Webhook triggered successfully")
        return True
