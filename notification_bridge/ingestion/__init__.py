"""
事件接入模块
"""

from .consumer import (
    EventIngestionAdapter, record_to_event, topic_to_event_type, event_type_to_topic
)

__all__ = [
    'EventIngestionAdapter',
    'record_to_event',
    'topic_to_event_type',
    'event_type_to_topic'
]
