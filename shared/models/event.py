"""事件数据模型"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Recipient(BaseModel):
    """通知接收者"""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId", description="用户ID")
    phone: Optional[str] = Field(None, description="手机号")

    @property
    def identifier(self) -> Optional[str]:
        """接收者标识，优先使用用户ID"""
        return self.user_id or self.phone


class Event(BaseModel):
    """规范化的领域事件"""

    model_config = ConfigDict(populate_by_name=True)

    event_type: str = Field(..., min_length=1, alias="eventType", description="事件类型")
    tenant_id: str = Field(..., min_length=1, alias="tenantId", description="租户ID")
    recipient: Recipient = Field(default_factory=Recipient, description="接收者")
    data: Dict[str, Any] = Field(default_factory=dict, description="事件数据")

    @field_validator('event_type')
    @classmethod
    def normalize_event_type(cls, v: str) -> str:
        """去除事件类型首尾空白，空白字符串无效"""
        v = v.strip()
        if not v:
            raise ValueError("eventType must not be blank")
        return v
