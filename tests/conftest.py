"""测试配置"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, Mock

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from notification_bridge.notifications.types import ConfigCode
from shared.models.event import Event, Recipient


# 06:30 UTC = 12:00 Asia/Kolkata
NOON_IST = datetime(2026, 3, 2, 6, 30, tzinfo=timezone.utc)


def make_config_client(documents: Dict[str, Optional[Dict[str, Any]]]) -> Mock:
    """按配置编码返回内容的模拟配置客户端"""
    client = Mock()

    async def fetch_content(tenant_id, namespace, config_code):
        document = documents.get(config_code)
        if isinstance(document, Exception):
            raise document
        return document

    client.fetch_content = AsyncMock(side_effect=fetch_content)
    client.close = AsyncMock()
    return client


def make_preference_client(payload: Optional[Dict[str, Any]] = None) -> Mock:
    """返回固定偏好内容的模拟偏好客户端"""
    client = Mock()
    client.fetch_preferences = AsyncMock(return_value=payload)
    client.close = AsyncMock()
    return client


def granted_preferences(language: str = None) -> Dict[str, Any]:
    payload = {'consent': {'WHATSAPP': {'status': 'GRANTED'}}}
    if language:
        payload['preferredLanguage'] = language
    return payload


def policy_documents(**overrides) -> Dict[str, Any]:
    """所有门控都放行的租户配置"""
    documents = {
        ConfigCode.EVENT_CHANNELS: {
            'events': {'PGR_CREATE': {'channels': ['WHATSAPP']}}
        },
        ConfigCode.FEATURE_FLAGS: {'WHATSAPP_OUTBOUND_ENABLED': True},
        ConfigCode.DELIVERY_GUARDRAILS: {
            'quietHours': {'start': 22, 'end': 7},
            'rateLimits': {'PGR_CREATE': {'maxPerWindow': 100}}
        },
        ConfigCode.TEMPLATE_BINDINGS: {
            'bindings': [
                {'eventType': 'PGR_CREATE', 'channel': 'WHATSAPP', 'templateCode': 'PGR_CREATE_WA'}
            ]
        },
        ConfigCode.LANGUAGE_STRATEGY: {'defaultLocale': 'en_IN'},
        'PGR_CREATE_WA': {
            'templates': {
                'en_IN': 'Hello {{name}}, complaint {{id}} received',
                'hi_IN': 'नमस्ते {{name}}, शिकायत {{id}} दर्ज'
            }
        }
    }
    documents.update(overrides)
    return documents


@pytest.fixture
def sample_event() -> Event:
    """示例事件"""
    return Event(
        event_type="PGR_CREATE",
        tenant_id="pg.citya",
        recipient=Recipient(user_id="user-1", phone="+919876543210"),
        data={'name': 'Asha', 'id': 'C-100'}
    )


@pytest.fixture
def fixed_clock():
    """固定在租户本地中午的时钟"""
    return lambda: NOON_IST
