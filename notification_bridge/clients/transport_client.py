"""
Chat channel transport client (WhatsApp provider).
"""

import logging
from typing import Any, Dict

from .base import ServiceClient, ServiceRequestError
from ..notifications.exceptions import TransportUnavailable
from ..notifications.types import SendResult

logger = logging.getLogger(__name__)

CONNECTED_STATES = {'connected', 'mock_connected'}


class ChannelTransportClient(ServiceClient):
    """Sends rendered text through the WhatsApp provider."""

    SEND_PATH = "/baileys/send"
    STATUS_PATH = "/baileys/health"
    WEBHOOK_PATH = "/baileys/novu-webhook"

    @property
    def webhook_url(self) -> str:
        """Callback endpoint handed to the workflow engine as chat credentials."""
        return f"{self.base_url}{self.WEBHOOK_PATH}"

    async def send_message(self, recipient_address: str, text: str) -> SendResult:
        """
        Send a text message.

        The provider answers with {success, messageId?, error?}, including on
        503 when the session is not paired, so error bodies are decoded too.

        Raises:
            TransportUnavailable: The provider could not be reached at all
        """
        try:
            body = await self._request(
                'POST', self.SEND_PATH,
                {'to': recipient_address, 'content': text},
                accept_error_body=True
            )
        except ServiceRequestError as e:
            raise TransportUnavailable(str(e))

        if not body.get('success'):
            return SendResult(success=False, error=body.get('error') or 'Transport reported failure')
        return SendResult(success=True, message_id=body.get('messageId'))

    async def get_status(self) -> Dict[str, Any]:
        """
        Query the provider's connection state.

        Returns:
            {'connected': bool, 'status': str}
        """
        try:
            body = await self._request('GET', self.STATUS_PATH)
        except ServiceRequestError as e:
            logger.warning(f"Transport status check failed: {e}")
            return {'connected': False, 'status': 'unreachable', 'error': str(e)}

        whatsapp = body.get('whatsapp') or {}
        state = whatsapp.get('status', 'unknown')
        return {'connected': state in CONNECTED_STATES, 'status': state}
