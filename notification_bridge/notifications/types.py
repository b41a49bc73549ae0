"""
通知管道类型定义
"""

from enum import Enum
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass


class NotificationChannel(Enum):
    """通知渠道枚举"""
    WHATSAPP = "WHATSAPP"


class OutcomeStatus(Enum):
    """管道处理结果状态"""
    SENT = "SENT"
    SKIPPED = "SKIPPED"
    DEFERRED = "DEFERRED"
    RATE_LIMITED = "RATE_LIMITED"
    SIMULATED = "SIMULATED"
    ERROR = "ERROR"


class DispatchMode(Enum):
    """投递策略，启动时确定"""
    WORKFLOW = "workflow"
    DIRECT = "direct"


class ConfigCode:
    """租户配置文档编码"""
    EVENT_CHANNELS = "EVENT_CHANNELS"
    FEATURE_FLAGS = "FEATURE_FLAGS"
    DELIVERY_GUARDRAILS = "DELIVERY_GUARDRAILS"
    TEMPLATE_BINDINGS = "TEMPLATE_BINDINGS"
    LANGUAGE_STRATEGY = "LANGUAGE_STRATEGY"


CONSENT_GRANTED = "GRANTED"
FALLBACK_LOCALE = "en_IN"


@dataclass
class PipelineOutcome:
    """一次管道运行的最终结果"""
    status: OutcomeStatus
    transaction_id: str
    details: Optional[Union[str, Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'status': self.status.value,
            'transactionId': self.transaction_id,
        }
        if self.details is not None:
            result['details'] = self.details
        return result


@dataclass
class SendResult:
    """渠道传输发送结果"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
