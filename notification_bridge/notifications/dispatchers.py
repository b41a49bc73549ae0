"""
渠道投递策略：委托工作流 与 直接发送
"""

import logging
import re
from typing import Dict, Optional

from .base import ChannelDispatcher, TemplateRenderer
from .exceptions import (
    ConfigUnavailable, SubscriberRegistrationFailed, TemplateMissing,
    TransportUnavailable, WorkflowTriggerFailed
)
from .types import (
    ConfigCode, DispatchMode, NotificationChannel, OutcomeStatus, PipelineOutcome
)
from shared.logger import bind_transaction
from shared.models.event import Event


logger = logging.getLogger(__name__)


def normalize_phone(phone: str, country_code: str = "91") -> str:
    """
    规范化手机号为E.164格式

    Args:
        phone: 原始手机号
        country_code: 默认国家代码

    Returns:
        str: +开头的号码
    """
    digits = re.sub(r'\D', '', phone or '')
    if digits.startswith(country_code) and len(digits) == len(country_code) + 10:
        return f"+{digits}"
    if len(digits) == 10:
        return f"+{country_code}{digits}"
    return f"+{digits}"


def recipient_address(event: Event, country_code: str = "91") -> str:
    """接收者地址：优先手机号，其次用用户ID推导"""
    if event.recipient.phone:
        return event.recipient.phone
    if event.recipient.user_id:
        return normalize_phone(event.recipient.user_id, country_code)
    raise ValueError("Event has no recipient phone or userId")


class WorkflowDispatcher(ChannelDispatcher):
    """委托工作流策略：模板渲染与重试由工作流引擎负责"""

    CREDENTIALS_PROVIDER = "chat-webhook"

    def __init__(self, channel: NotificationChannel, workflow_client,
                 workflow_map: Dict[str, str], webhook_url: str,
                 country_code: str = "91"):
        super().__init__(channel)
        self.workflow_client = workflow_client
        self.workflow_map = dict(workflow_map)
        self.webhook_url = webhook_url
        self.country_code = country_code

    @property
    def name(self) -> str:
        return DispatchMode.WORKFLOW.value

    async def _register_subscriber(self, subscriber_id: str, phone: str, log):
        """确保订阅者存在并带有投递凭据；失败只记录警告"""
        try:
            await self.workflow_client.identify(subscriber_id, {
                'phone': phone,
                'data': {'phoneNumber': phone}
            })
            await self.workflow_client.set_credentials(
                subscriber_id, self.CREDENTIALS_PROVIDER, {'webhookUrl': self.webhook_url}
            )
            log.info(f"订阅者 {subscriber_id} 已配置 {self.CREDENTIALS_PROVIDER} 凭据")
        except SubscriberRegistrationFailed as e:
            log.warning(f"订阅者注册失败（继续触发）: {e}")

    async def dispatch(self, event: Event, locale: str, transaction_id: str) -> PipelineOutcome:
        log = bind_transaction(logger, transaction_id)

        workflow_id = self.workflow_map.get(event.event_type)
        if not workflow_id:
            return PipelineOutcome(
                OutcomeStatus.ERROR, transaction_id,
                f"No workflow mapped for event: {event.event_type}"
            )

        phone = recipient_address(event, self.country_code)
        subscriber_id = "phone_" + re.sub(r"\D", "", phone)
        log.info(f"使用工作流模板投递 (workflow: {workflow_id})")

        await self._register_subscriber(subscriber_id, phone, log)

        try:
            await self.workflow_client.trigger(
                workflow_id,
                to={'subscriberId': subscriber_id, 'phone': phone},
                payload={**event.data, 'phoneNumber': phone, 'locale': locale},
                transaction_id=transaction_id
            )
        except WorkflowTriggerFailed as e:
            log.error(f"工作流触发失败: {e}")
            return PipelineOutcome(OutcomeStatus.ERROR, transaction_id, str(e))

        log.info(f"工作流 '{workflow_id}' 已触发")
        return PipelineOutcome(OutcomeStatus.SENT, transaction_id, {
            'workflow': workflow_id,
            'provider': 'novu',
            'subscriberId': subscriber_id
        })

    async def close(self):
        await self.workflow_client.close()


class DirectSendDispatcher(ChannelDispatcher):
    """
    直接发送策略：本服务选择模板并渲染

    渲染结果优先通过渠道传输发送；未配置传输但配置了工作流引擎时，
    交给以事件类型命名的工作流投递；两者都没有时返回 SIMULATED。
    """

    def __init__(self, channel: NotificationChannel, config_client,
                 renderer: TemplateRenderer, namespace: str,
                 transport_client=None, country_code: str = "91",
                 workflow_client=None):
        super().__init__(channel)
        self.config_client = config_client
        self.renderer = renderer
        self.namespace = namespace
        self.transport_client = transport_client
        self.country_code = country_code
        self.workflow_client = workflow_client

    @property
    def name(self) -> str:
        return DispatchMode.DIRECT.value

    async def _resolve_template_code(self, event: Event) -> str:
        try:
            content = await self.config_client.fetch_content(
                event.tenant_id, self.namespace, ConfigCode.TEMPLATE_BINDINGS
            )
        except ConfigUnavailable as e:
            raise TemplateMissing(f"Template bindings unavailable: {e}")

        for binding in (content or {}).get('bindings') or []:
            if binding.get('eventType') == event.event_type and binding.get('channel') == self.channel.value:
                if binding.get('templateCode'):
                    return binding['templateCode']
        raise TemplateMissing("No template binding found for event")

    async def _load_template_text(self, event: Event, template_code: str, locale: str) -> str:
        try:
            content = await self.config_client.fetch_content(event.tenant_id, self.namespace, template_code)
        except ConfigUnavailable as e:
            raise TemplateMissing(f"Template {template_code} unavailable: {e}")
        templates = (content or {}).get('templates') or {}
        return self.renderer.select_text(templates, locale)

    async def render(self, event: Event, locale: str, log) -> str:
        """解析绑定、取模板、渲染"""
        template_code = await self._resolve_template_code(event)
        log.info(f"模板绑定: {template_code}")

        template_text = await self._load_template_text(event, template_code, locale)
        message = self.renderer.render(template_text, event.data)
        log.info("消息已渲染")
        return message

    async def _send_via_workflow(self, event: Event, message: str,
                                 transaction_id: str, log) -> PipelineOutcome:
        """未配置渠道传输时，把已渲染的消息交给以事件类型命名的工作流投递"""
        subscriber_id = event.recipient.user_id or normalize_phone(
            recipient_address(event, self.country_code), self.country_code
        )
        log.info(f"通过工作流 '{event.event_type}' 投递已渲染消息")
        try:
            await self.workflow_client.trigger(
                event.event_type,
                to={'subscriberId': subscriber_id, 'phone': event.recipient.phone},
                payload={'message': message, **event.data},
                transaction_id=transaction_id
            )
        except WorkflowTriggerFailed as e:
            log.error(f"工作流触发失败: {e}")
            return PipelineOutcome(OutcomeStatus.ERROR, transaction_id, e.message)

        return PipelineOutcome(OutcomeStatus.SENT, transaction_id, {
            'message': message,
            'provider': 'novu'
        })

    async def dispatch(self, event: Event, locale: str, transaction_id: str) -> PipelineOutcome:
        log = bind_transaction(logger, transaction_id)

        try:
            message = await self.render(event, locale, log)
        except TemplateMissing as e:
            log.error(f"模板缺失: {e}")
            return PipelineOutcome(OutcomeStatus.ERROR, transaction_id, e.message)

        if self.transport_client is None:
            if self.workflow_client is not None:
                return await self._send_via_workflow(event, message, transaction_id, log)
            log.info(f"SIMULATED - 未配置渠道传输，消息: {message}")
            return PipelineOutcome(OutcomeStatus.SIMULATED, transaction_id, {
                'message': message,
                'provider': 'none'
            })

        address = recipient_address(event, self.country_code)
        log.info(f"通过渠道传输发送至 {address}")
        try:
            result = await self.transport_client.send_message(address, message)
        except TransportUnavailable as e:
            log.error(f"渠道传输不可用: {e}")
            return PipelineOutcome(OutcomeStatus.ERROR, transaction_id, e.message)

        if not result.success:
            log.error(f"渠道发送失败: {result.error}")
            return PipelineOutcome(OutcomeStatus.ERROR, transaction_id, result.error)

        log.info(f"消息已发送, messageId: {result.message_id}")
        return PipelineOutcome(OutcomeStatus.SENT, transaction_id, {
            'message': message,
            'messageId': result.message_id,
            'provider': 'baileys'
        })

    async def close(self):
        if self.transport_client is not None:
            await self.transport_client.close()
        if self.workflow_client is not None:
            await self.workflow_client.close()


def create_dispatcher(mode: DispatchMode, channel: NotificationChannel, *,
                      config_client=None, renderer: Optional[TemplateRenderer] = None,
                      namespace: str = "notification-orchestrator",
                      transport_client=None, workflow_client=None,
                      workflow_map: Optional[Dict[str, str]] = None,
                      webhook_url: str = "", country_code: str = "91") -> ChannelDispatcher:
    """
    按静态配置创建投递策略

    Args:
        mode: 投递模式

    Returns:
        ChannelDispatcher: 投递策略实例
    """
    if mode is DispatchMode.WORKFLOW:
        if workflow_client is None:
            raise ValueError("workflow dispatch mode requires a workflow client")
        return WorkflowDispatcher(
            channel, workflow_client, workflow_map or {}, webhook_url, country_code
        )

    if config_client is None:
        raise ValueError("direct dispatch mode requires a config client")
    return DirectSendDispatcher(
        channel, config_client, renderer or TemplateRenderer(),
        namespace, transport_client, country_code,
        workflow_client=workflow_client
    )
