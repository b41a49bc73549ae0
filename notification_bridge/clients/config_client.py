"""
Tenant configuration lookup client.
"""

import logging
from typing import Any, Dict, Optional

from .base import ServiceClient, ServiceRequestError
from ..notifications.exceptions import ConfigUnavailable

logger = logging.getLogger(__name__)


class ConfigLookupClient(ServiceClient):
    """Fetches the single active config document for (tenant, namespace, code)."""

    SEARCH_PATH = "/configs/v1/_search"

    async def fetch_config(self, tenant_id: str, namespace: str,
                           config_code: str) -> Optional[Dict[str, Any]]:
        """
        Look up an active configuration record.

        Returns:
            The first matching config document, or None when nothing matches

        Raises:
            ConfigUnavailable: The config service could not be reached or answered garbage
        """
        payload = {
            'criteria': {
                'tenantId': tenant_id,
                'namespace': namespace,
                'configCode': config_code,
                'status': 'ACTIVE'
            }
        }
        try:
            body = await self._request('POST', self.SEARCH_PATH, payload)
        except ServiceRequestError as e:
            logger.warning(f"Failed to fetch config {namespace}/{config_code}: {e}")
            raise ConfigUnavailable(str(e), config_code=config_code)

        configs = body.get('configs') or []
        return configs[0] if configs else None

    async def fetch_content(self, tenant_id: str, namespace: str,
                            config_code: str) -> Optional[Dict[str, Any]]:
        """Like fetch_config but returns only the document's content mapping."""
        config = await self.fetch_config(tenant_id, namespace, config_code)
        if not config:
            return None
        content = config.get('content')
        return content if isinstance(content, dict) else None
