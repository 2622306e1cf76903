import logging
from typing import Any

import requests

from ..exceptions import NotificationError

log = logging.getLogger(__name__)


class DiscordWebhookSink:
    """Executes Discord webhooks and deletes the messages they created."""

    def __init__(self, http: requests.Session | None = None, timeout: float = 30):
        self._http = http or requests.Session()
        self._timeout = timeout

    def post(self, webhook_url: str, payload: dict[str, Any]) -> str:
        """
        Execute a webhook and wait for the created message.

        :return: the ID of the created message, needed to delete it later
        :raises NotificationError: if the webhook call failed
        """
        try:
            response = self._http.post(webhook_url, params={"wait": "true"}, json=payload, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise NotificationError(f"Error executing webhook: {e}") from e

        if not response.ok:
            raise NotificationError(
                f"Webhook failed: {response.status_code} {response.text}", status_code=response.status_code
            )
        message_id = response.json().get("id")
        if not message_id:
            raise NotificationError("Webhook response did not contain a message ID")
        return str(message_id)

    def delete_message(self, webhook_url: str, message_id: str) -> bool:
        """Delete a message created by ``post``. Best-effort: failures are logged."""
        delete_url = f"{webhook_url.rstrip('/')}/messages/{message_id}"
        try:
            response = self._http.delete(delete_url, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            log.error(f"Error deleting webhook message {message_id}: {e}")
            return False
        if not response.ok:
            log.error(f"Failed to delete webhook message {message_id}: {response.status_code}")
            return False
        return True
