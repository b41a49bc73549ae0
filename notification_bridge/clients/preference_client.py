"""
User notification preference lookup client.
"""

import logging
from typing import Any, Dict, Optional

from .base import ServiceClient, ServiceRequestError
from ..notifications.exceptions import PreferenceLookupFailed

logger = logging.getLogger(__name__)


class PreferenceLookupClient(ServiceClient):
    """Reads a user's consent flags and preferred language."""

    SEARCH_PATH = "/user-preferences/v1/_search"

    def __init__(self, base_url: str, preference_code: str = "USER_NOTIFICATION_PREFERENCES", **kwargs):
        super().__init__(base_url, **kwargs)
        self.preference_code = preference_code

    async def fetch_preferences(self, user_id: str, tenant_id: str) -> Optional[Dict[str, Any]]:
        """
        Look up the preference payload for a user.

        Returns:
            The preference payload, or None when the user has no record

        Raises:
            PreferenceLookupFailed: The lookup itself failed. Callers must not
                read this as "consent granted".
        """
        payload = {
            'criteria': {
                'userId': user_id,
                'tenantId': tenant_id,
                'preferenceCode': self.preference_code
            }
        }
        try:
            body = await self._request('POST', self.SEARCH_PATH, payload)
        except ServiceRequestError as e:
            logger.warning(f"Failed to fetch user preferences for {user_id}: {e}")
            raise PreferenceLookupFailed(f"Preference lookup failed: {e}")

        preferences = body.get('preferences') or []
        if not preferences:
            return None
        record_payload = preferences[0].get('payload')
        return record_payload if isinstance(record_payload, dict) else None
