"""
Delegated workflow engine client (Novu REST API).
"""

import logging
from typing import Any, Dict, Optional

from .base import ServiceClient, ServiceRequestError
from ..notifications.exceptions import SubscriberRegistrationFailed, WorkflowTriggerFailed

logger = logging.getLogger(__name__)


class WorkflowClient(ServiceClient):
    """Registers subscribers and triggers workflows on a Novu instance."""

    def __init__(self, base_url: str, api_key: str, **kwargs):
        headers = kwargs.pop('headers', None) or {}
        headers.setdefault('Authorization', f'ApiKey {api_key}')
        super().__init__(base_url, headers=headers, **kwargs)

    async def identify(self, subscriber_id: str, attributes: Dict[str, Any]):
        """Create or update a subscriber (idempotent upsert)."""
        try:
            await self._request('POST', '/v1/subscribers', {'subscriberId': subscriber_id, **attributes})
        except ServiceRequestError as e:
            raise SubscriberRegistrationFailed(f"identify {subscriber_id} failed: {e}")

    async def set_credentials(self, subscriber_id: str, provider_id: str,
                              credentials: Dict[str, Any]):
        """Attach channel delivery credentials (e.g. a webhook URL) to a subscriber."""
        try:
            await self._request(
                'PUT', f'/v1/subscribers/{subscriber_id}/credentials',
                {'providerId': provider_id, 'credentials': credentials}
            )
        except ServiceRequestError as e:
            raise SubscriberRegistrationFailed(f"set credentials for {subscriber_id} failed: {e}")

    async def trigger(self, workflow_id: str, to: Dict[str, Any],
                      payload: Dict[str, Any], transaction_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Trigger a workflow with raw event data.

        Raises:
            WorkflowTriggerFailed: The engine rejected or never received the trigger
        """
        body = {'name': workflow_id, 'to': to, 'payload': payload}
        if transaction_id:
            body['transactionId'] = transaction_id
        try:
            response = await self._request('POST', '/v1/events/trigger', body)
        except ServiceRequestError as e:
            raise WorkflowTriggerFailed(f"trigger {workflow_id} failed: {e}")
        return response.get('data') or {}
