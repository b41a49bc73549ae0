"""
通知管道基础类和接口定义
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Iterable, Optional, TypeVar
import logging
from jinja2 import ChainableUndefined, Environment, BaseLoader, TemplateSyntaxError

from .exceptions import TemplateMissing
from .types import NotificationChannel, PipelineOutcome
from shared.models.event import Event


logger = logging.getLogger(__name__)

T = TypeVar("T")


def first_match(candidates: Iterable[Optional[T]]) -> Optional[T]:
    """
    按顺序返回第一个非空候选值

    Args:
        candidates: 按优先级排列的候选值

    Returns:
        第一个非空值，全部为空时返回None
    """
    for candidate in candidates:
        if candidate:
            return candidate
    return None


class TemplateRenderer:
    """按语言选择模板文本并以事件数据渲染"""

    def __init__(self, fallback_locale: str = "en_IN"):
        self.fallback_locale = fallback_locale
        # 缺失字段和 null 值都渲染为空字符串；纯文本消息不做HTML转义
        self.env = Environment(
            loader=BaseLoader(),
            undefined=ChainableUndefined,
            autoescape=False,
            finalize=lambda value: "" if value is None else value
        )

    def select_text(self, templates: Dict[str, str], locale: str) -> str:
        """
        选择指定语言的模板文本，缺失时回退到默认语言

        Raises:
            TemplateMissing: 两种语言都没有模板文本
        """
        text = first_match([templates.get(locale), templates.get(self.fallback_locale)])
        if not text:
            raise TemplateMissing(f"Template content not found for locale {locale}")
        return text

    def render(self, template_str: str, data: Dict[str, Any]) -> str:
        """
        渲染模板

        Args:
            template_str: 模板字符串
            data: 模板数据

        Returns:
            str: 渲染后的内容
        """
        try:
            template = self.env.from_string(template_str)
        except TemplateSyntaxError as e:
            logger.error(f"模板编译失败: {e}")
            raise TemplateMissing(f"Template could not be compiled: {e}")
        return template.render(data or {})


class ChannelDispatcher(ABC):
    """渠道投递策略基类"""

    def __init__(self, channel: NotificationChannel):
        self.channel = channel

    @property
    @abstractmethod
    def name(self) -> str:
        """策略名称"""

    @abstractmethod
    async def dispatch(self, event: Event, locale: str, transaction_id: str) -> PipelineOutcome:
        """
        投递通知

        Args:
            event: 事件
            locale: 已解析的语言
            transaction_id: 事务ID

        Returns:
            PipelineOutcome: 投递结果
        """

    async def close(self):
        """释放策略持有的客户端资源"""
