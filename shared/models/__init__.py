"""数据模型包"""

from .event import Event, Recipient

__all__ = [
    "Event",
    "Recipient",
]
