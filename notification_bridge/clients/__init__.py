"""
外部服务客户端
"""

from .base import ServiceClient, ServiceRequestError
from .config_client import ConfigLookupClient
from .preference_client import PreferenceLookupClient
from .transport_client import ChannelTransportClient
from .workflow_client import WorkflowClient

__all__ = [
    'ServiceClient',
    'ServiceRequestError',
    'ConfigLookupClient',
    'PreferenceLookupClient',
    'ChannelTransportClient',
    'WorkflowClient'
]
