"""
通知编排器 - 单次事件的策略门控与投递管道
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .base import ChannelDispatcher, first_match
from .exceptions import ConfigUnavailable, NotificationBridgeError
from .rate_limiter import RateLimiter
from .types import (
    CONSENT_GRANTED, FALLBACK_LOCALE, ConfigCode, NotificationChannel,
    OutcomeStatus, PipelineOutcome
)
from shared.logger import bind_transaction
from shared.models.event import Event


logger = logging.getLogger(__name__)


def build_transaction_id(event: Event, channel: NotificationChannel, ingested_at: datetime) -> str:
    """由事件类型、接收者标识和接收时间生成事务ID，仅用于日志关联"""
    epoch_ms = int(ingested_at.timestamp() * 1000)
    return f"{event.event_type}-{channel.value}-{event.recipient.identifier}-{epoch_ms}"


def in_quiet_hours(hour: int, start: int, end: int) -> bool:
    """
    判断小时是否处于免打扰时段 [start, end)

    start > end 时跨越午夜（如 22-7），start < end 时为普通区间（如 9-17），
    start == end 视为空时段。
    """
    if start > end:
        return hour >= start or hour < end
    if start < end:
        return start <= hour < end
    return False


class NotificationOrchestrator:
    """通知编排器"""

    def __init__(
        self,
        config_client,
        preference_client,
        rate_limiter: RateLimiter,
        dispatcher: ChannelDispatcher,
        channel: NotificationChannel = NotificationChannel.WHATSAPP,
        namespace: str = "notification-orchestrator",
        default_rate_limit: int = 100,
        fallback_locale: str = FALLBACK_LOCALE,
        tenant_timezone: str = "Asia/Kolkata",
        clock: Callable[[], datetime] = None
    ):
        self.config_client = config_client
        self.preference_client = preference_client
        self.rate_limiter = rate_limiter
        self.dispatcher = dispatcher
        self.channel = channel
        self.namespace = namespace
        self.default_rate_limit = default_rate_limit
        self.fallback_locale = fallback_locale
        self.tenant_timezone = tenant_timezone
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._stats: Dict[str, int] = {status.value: 0 for status in OutcomeStatus}

    async def process(self, event: Event) -> PipelineOutcome:
        """
        处理单个事件，返回最终结果；内部任何失败都转换为ERROR结果

        Args:
            event: 规范化事件

        Returns:
            PipelineOutcome: 处理结果
        """
        transaction_id = build_transaction_id(event, self.channel, self._clock())
        log = bind_transaction(logger, transaction_id)
        log.info(f"开始处理通知: {event.event_type} / {event.tenant_id}")

        try:
            outcome = await self._run_pipeline(event, transaction_id, log)
        except NotificationBridgeError as e:
            log.error(f"管道失败: {e.code}: {e.message}")
            outcome = PipelineOutcome(OutcomeStatus.ERROR, transaction_id, e.message)
        except Exception as e:
            log.exception(f"管道异常: {e}")
            outcome = PipelineOutcome(OutcomeStatus.ERROR, transaction_id, str(e) or e.__class__.__name__)

        self._stats[outcome.status.value] += 1
        log.info(f"处理结束: {outcome.status.value}")
        return outcome

    async def _run_pipeline(self, event: Event, transaction_id: str, log) -> PipelineOutcome:
        channel = self.channel.value

        # 1. 事件-渠道启用检查
        event_channels = await self._fetch_optional(event.tenant_id, ConfigCode.EVENT_CHANNELS, log)
        channel_config = ((event_channels or {}).get('events') or {}).get(event.event_type) or {}
        if channel not in (channel_config.get('channels') or []):
            return PipelineOutcome(OutcomeStatus.SKIPPED, transaction_id,
                                   f"{channel} not enabled for this event")
        log.info(f"步骤1: {channel} 已为该事件启用")

        # 2. 功能开关
        feature_flags = await self._fetch_optional(event.tenant_id, ConfigCode.FEATURE_FLAGS, log)
        if not (feature_flags or {}).get(f"{channel}_OUTBOUND_ENABLED"):
            return PipelineOutcome(OutcomeStatus.SKIPPED, transaction_id, f"{channel} outbound disabled")
        log.info("步骤2: 功能开关已开启")

        # 3. 免打扰时段
        guardrails = await self._fetch_optional(event.tenant_id, ConfigCode.DELIVERY_GUARDRAILS, log) or {}
        quiet_hours = self._parse_quiet_hours(guardrails.get('quietHours'), log)
        if quiet_hours and not channel_config.get('exemptFromQuietHours'):
            hour = self._local_hour(guardrails.get('timezone'), log)
            if in_quiet_hours(hour, *quiet_hours):
                return PipelineOutcome(OutcomeStatus.DEFERRED, transaction_id,
                                       "Quiet hours - will retry later")
        log.info("步骤3: 不在免打扰时段")

        # 4. 速率限制
        limit = self._rate_limit_for(guardrails, event.event_type)
        key = (event.tenant_id, event.event_type, channel)
        if not self.rate_limiter.check_and_increment(key, limit):
            return PipelineOutcome(OutcomeStatus.RATE_LIMITED, transaction_id, "Rate limit exceeded")
        log.info("步骤4: 速率限制检查通过")

        # 5. 用户授权；查询失败以异常形式向上传播为ERROR
        identifier = event.recipient.identifier
        preferences = None
        if identifier:
            preferences = await self.preference_client.fetch_preferences(identifier, event.tenant_id)
        consent = ((preferences or {}).get('consent') or {}).get(channel) or {}
        if consent.get('status') != CONSENT_GRANTED:
            return PipelineOutcome(OutcomeStatus.SKIPPED, transaction_id,
                                   f"User has not granted {channel} consent")
        log.info("步骤5: 用户授权已确认")

        # 6. 语言解析
        language_strategy = await self._fetch_optional(event.tenant_id, ConfigCode.LANGUAGE_STRATEGY, log)
        locale = first_match([
            (preferences or {}).get('preferredLanguage'),
            (language_strategy or {}).get('defaultLocale'),
            self.fallback_locale
        ])
        log.info(f"步骤6: 语言已解析 - {locale}")

        # 7-8. 投递
        return await self.dispatcher.dispatch(event, locale, transaction_id)

    async def _fetch_optional(self, tenant_id: str, config_code: str, log) -> Optional[Dict[str, Any]]:
        """获取配置内容；配置服务不可用时按缺失处理"""
        try:
            return await self.config_client.fetch_content(tenant_id, self.namespace, config_code)
        except ConfigUnavailable as e:
            log.warning(f"配置 {config_code} 不可用，按缺失处理: {e}")
            return None

    def _parse_quiet_hours(self, quiet_hours: Any, log) -> Optional[Tuple[int, int]]:
        if not isinstance(quiet_hours, dict):
            return None
        try:
            return int(quiet_hours['start']), int(quiet_hours['end'])
        except (KeyError, TypeError, ValueError):
            log.warning(f"免打扰配置无效，忽略: {quiet_hours}")
            return None

    def _local_hour(self, tz_name: Optional[str], log) -> int:
        """租户本地时间的小时"""
        try:
            tz = ZoneInfo(tz_name or self.tenant_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            log.warning(f"未知时区 {tz_name}，使用 {self.tenant_timezone}")
            tz = ZoneInfo(self.tenant_timezone)
        return self._clock().astimezone(tz).hour

    def _rate_limit_for(self, guardrails: Dict[str, Any], event_type: str) -> int:
        """窗口上限；0 是有效配置，只有两个键都缺失时才使用默认值"""
        rule = (guardrails.get('rateLimits') or {}).get(event_type) or {}
        for field in ('maxPerWindow', 'maxPerHour'):
            if rule.get(field) is not None:
                return int(rule[field])
        return self.default_rate_limit

    def get_statistics(self) -> Dict[str, Any]:
        """
        获取编排器统计信息

        Returns:
            Dict[str, Any]: 统计信息
        """
        return {
            'outcomes': dict(self._stats),
            'dispatch_mode': self.dispatcher.name,
            'channel': self.channel.value,
            'rate_limiter': self.rate_limiter.get_stats()
        }

    async def close(self):
        """关闭所有下游客户端"""
        await self.dispatcher.close()
        await self.config_client.close()
        await self.preference_client.close()
