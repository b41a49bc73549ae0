"""
通知编排模块

将领域事件经过策略门控后投递到聊天渠道。
"""

from .base import ChannelDispatcher, TemplateRenderer, first_match
from .dispatchers import DirectSendDispatcher, WorkflowDispatcher, create_dispatcher, normalize_phone
from .exceptions import (
    NotificationBridgeError, ConfigUnavailable, PreferenceLookupFailed, TemplateMissing,
    TransportUnavailable, WorkflowTriggerFailed, SubscriberRegistrationFailed
)
from .orchestrator import NotificationOrchestrator, in_quiet_hours
from .rate_limiter import RateLimiter
from .types import (
    NotificationChannel, OutcomeStatus, DispatchMode, ConfigCode, PipelineOutcome, SendResult
)

__all__ = [
    'ChannelDispatcher',
    'TemplateRenderer',
    'first_match',
    'DirectSendDispatcher',
    'WorkflowDispatcher',
    'create_dispatcher',
    'normalize_phone',
    'NotificationBridgeError',
    'ConfigUnavailable',
    'PreferenceLookupFailed',
    'TemplateMissing',
    'TransportUnavailable',
    'WorkflowTriggerFailed',
    'SubscriberRegistrationFailed',
    'NotificationOrchestrator',
    'in_quiet_hours',
    'RateLimiter',
    'NotificationChannel',
    'OutcomeStatus',
    'DispatchMode',
    'ConfigCode',
    'PipelineOutcome',
    'SendResult'
]
