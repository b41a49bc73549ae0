"""
根据配置装配编排器与事件接入适配器
"""

import logging
from dataclasses import dataclass
from typing import Optional

from shared.config import BridgeConfig
from .clients import (
    ChannelTransportClient, ConfigLookupClient, PreferenceLookupClient, WorkflowClient
)
from .ingestion import EventIngestionAdapter
from .notifications import (
    DispatchMode, NotificationChannel, NotificationOrchestrator, RateLimiter,
    TemplateRenderer, create_dispatcher
)


logger = logging.getLogger(__name__)


@dataclass
class BridgeServices:
    """运行期服务集合"""
    orchestrator: NotificationOrchestrator
    ingestion: EventIngestionAdapter
    transport_client: Optional[ChannelTransportClient]
    workflow_configured: bool
    dispatch_mode: DispatchMode

    async def close(self):
        """按顺序释放资源，前一步失败不影响后续关闭"""
        try:
            await self.ingestion.stop()
        finally:
            try:
                await self.orchestrator.close()
            finally:
                if self.transport_client is not None:
                    await self.transport_client.close()


def resolve_dispatch_mode(settings: BridgeConfig) -> DispatchMode:
    """
    确定投递策略

    配置为 workflow 但没有 Novu API Key 时回退到 direct。
    """
    try:
        mode = DispatchMode(settings.delivery.dispatch_mode.lower())
    except ValueError:
        raise ValueError(f"未知的投递模式: {settings.delivery.dispatch_mode}")

    if mode is DispatchMode.WORKFLOW and not settings.services.novu_api_key:
        logger.warning("未配置NOVU_API_KEY，workflow模式回退为direct模式")
        return DispatchMode.DIRECT
    return mode


def build_services(settings: BridgeConfig, rate_limiter: RateLimiter = None) -> BridgeServices:
    """
    创建客户端、投递策略、编排器和接入适配器

    Args:
        settings: 应用配置
        rate_limiter: 可选的限流器实例（测试注入）

    Returns:
        BridgeServices: 装配好的服务
    """
    services = settings.services
    delivery = settings.delivery
    timeout = services.http_timeout
    channel = NotificationChannel(delivery.channel.upper())

    config_client = ConfigLookupClient(services.config_service_url, timeout=timeout)
    preference_client = PreferenceLookupClient(
        services.user_preferences_url, preference_code=delivery.preference_code, timeout=timeout
    )
    transport_client = None
    if delivery.use_baileys:
        transport_client = ChannelTransportClient(services.baileys_provider_url, timeout=timeout)

    workflow_client = None
    if services.novu_api_key:
        workflow_client = WorkflowClient(services.novu_api_url, services.novu_api_key, timeout=timeout)

    mode = resolve_dispatch_mode(settings)
    dispatcher = create_dispatcher(
        mode, channel,
        config_client=config_client,
        renderer=TemplateRenderer(fallback_locale=delivery.default_locale),
        namespace=delivery.config_namespace,
        transport_client=transport_client,
        workflow_client=workflow_client,
        workflow_map=delivery.workflows,
        webhook_url=f"{services.baileys_provider_url.rstrip('/')}{ChannelTransportClient.WEBHOOK_PATH}",
        country_code=delivery.phone_country_code
    )
    logger.info(f"投递模式: {mode.value}, 渠道: {channel.value}")

    orchestrator = NotificationOrchestrator(
        config_client=config_client,
        preference_client=preference_client,
        rate_limiter=rate_limiter or RateLimiter(),
        dispatcher=dispatcher,
        channel=channel,
        namespace=delivery.config_namespace,
        default_rate_limit=delivery.default_rate_limit,
        fallback_locale=delivery.default_locale,
        tenant_timezone=delivery.tenant_timezone
    )

    ingestion = EventIngestionAdapter(
        orchestrator,
        topics=settings.kafka.topics,
        brokers=settings.kafka.brokers,
        group_id=settings.kafka.kafka_group_id,
        default_tenant_id=delivery.default_tenant_id,
        retry_delay=settings.kafka.kafka_retry_delay
    )

    return BridgeServices(
        orchestrator=orchestrator,
        ingestion=ingestion,
        transport_client=transport_client,
        workflow_configured=workflow_client is not None,
        dispatch_mode=mode
    )
