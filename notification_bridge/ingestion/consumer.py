"""
事件接入适配器 - 订阅Kafka主题并驱动通知编排器
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError

from ..notifications.base import first_match
from ..notifications.orchestrator import NotificationOrchestrator
from ..notifications.types import PipelineOutcome
from shared.models.event import Event, Recipient


logger = logging.getLogger(__name__)

# 字段回退顺序，先匹配者优先
TENANT_FIELDS = ["tenantId"]
USER_ID_FIELDS = ["userId", "citizen.uuid"]
PHONE_FIELDS = ["mobileNumber", "citizen.mobileNumber"]


def topic_to_event_type(topic: str) -> str:
    """主题名转换为事件类型，如 pgr-create -> PGR_CREATE"""
    return topic.replace('-', '_').upper()


def event_type_to_topic(event_type: str) -> str:
    """事件类型转换回主题名，如 PGR_CREATE -> pgr-create"""
    return event_type.replace('_', '-').lower()


def _lookup(body: Dict[str, Any], path: str) -> Any:
    value: Any = body
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _first_field(body: Dict[str, Any], paths: List[str]) -> Optional[str]:
    value = first_match(_lookup(body, path) for path in paths)
    return str(value) if value is not None else None


def record_to_event(topic: str, body: Dict[str, Any], default_tenant_id: str) -> Event:
    """
    将主题记录映射为规范事件

    Args:
        topic: 主题名
        body: 已解码的记录体
        default_tenant_id: 记录缺少租户ID时使用的默认租户

    Returns:
        Event: 规范事件，data 为完整的记录体
    """
    return Event(
        event_type=topic_to_event_type(topic),
        tenant_id=_first_field(body, TENANT_FIELDS) or default_tenant_id,
        recipient=Recipient(
            user_id=_first_field(body, USER_ID_FIELDS),
            phone=_first_field(body, PHONE_FIELDS)
        ),
        data=body
    )


class EventIngestionAdapter:
    """事件接入适配器"""

    def __init__(self, orchestrator: NotificationOrchestrator, topics: List[str],
                 brokers: List[str], group_id: str,
                 default_tenant_id: str = "pg.citya",
                 retry_delay: float = 5.0,
                 consumer_factory: Callable[[], Any] = None):
        self.orchestrator = orchestrator
        self.topics = list(topics)
        self.brokers = list(brokers)
        self.group_id = group_id
        self.default_tenant_id = default_tenant_id
        self.retry_delay = retry_delay
        self._consumer_factory = consumer_factory or self._create_consumer
        self._consumer = None
        self._connected = False
        self._running = False
        self._worker_task: Optional[asyncio.Task] = None
        self._stats = {
            'records_received': 0,
            'records_failed': 0,
            'manual_triggers': 0
        }

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _create_consumer(self) -> AIOKafkaConsumer:
        return AIOKafkaConsumer(
            *self.topics,
            bootstrap_servers=self.brokers,
            group_id=self.group_id,
            client_id=self.group_id,
            enable_auto_commit=False,
            auto_offset_reset="latest"
        )

    async def start(self):
        """启动订阅循环"""
        if self._running:
            logger.warning("事件接入已在运行")
            return

        self._running = True
        self._worker_task = asyncio.create_task(self._run())
        logger.info(f"事件接入已启动，主题: {', '.join(self.topics)}")

    async def stop(self):
        """停止订阅循环"""
        if not self._running:
            return

        self._running = False
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass

        await self._disconnect()
        logger.info("事件接入已停止")

    async def _disconnect(self):
        consumer, self._consumer = self._consumer, None
        self._connected = False
        if consumer is not None:
            try:
                await consumer.stop()
            except KafkaError as e:
                logger.warning(f"关闭Kafka消费者失败: {e}")

    async def _run(self):
        """订阅主循环，连接失败时延迟重试"""
        while self._running:
            try:
                self._consumer = self._consumer_factory()
                await self._consumer.start()
                self._connected = True
                logger.info(f"已订阅Kafka主题: {', '.join(self.topics)}")
                await self._consume()
            except asyncio.CancelledError:
                break
            except (KafkaError, OSError) as e:
                logger.error(f"Kafka消费者异常，{self.retry_delay}秒后重试: {e}")
                await self._disconnect()
                await asyncio.sleep(self.retry_delay)
            except Exception as e:
                # 意外异常同样重连，接入任务只在取消时结束
                logger.exception(f"接入循环意外异常，{self.retry_delay}秒后重试: {e}")
                await self._disconnect()
                await asyncio.sleep(self.retry_delay)

    async def _consume(self):
        async for record in self._consumer:
            await self.handle_record(record.topic, record.value)
            # 管道运行结束后才提交，崩溃时可重新投递
            await self._consumer.commit({
                TopicPartition(record.topic, record.partition): record.offset + 1
            })

    async def handle_record(self, topic: str, value: Optional[bytes]) -> Optional[PipelineOutcome]:
        """
        处理单条记录；任何失败只记录日志，不影响后续记录

        Returns:
            Optional[PipelineOutcome]: 处理结果，记录无法解析时返回None
        """
        self._stats['records_received'] += 1
        if not value:
            return None

        try:
            body = json.loads(value)
            if not isinstance(body, dict):
                raise ValueError("record body is not a JSON object")
            logger.info(f"收到Kafka消息 {topic}: {body}")

            event = record_to_event(topic, body, self.default_tenant_id)
            outcome = await self.orchestrator.process(event)
            logger.info(f"记录处理完成 {topic}: {outcome.status.value} ({outcome.transaction_id})")
            return outcome

        except Exception as e:
            self._stats['records_failed'] += 1
            logger.error(f"Kafka消息处理失败 {topic}: {e}")
            return None

    async def trigger(self, event: Event) -> PipelineOutcome:
        """手动触发：跳过主题映射，直接运行管道"""
        self._stats['manual_triggers'] += 1
        return await self.orchestrator.process(event)

    def get_stats(self) -> Dict[str, Any]:
        """获取接入统计信息"""
        return {
            **self._stats,
            'connected': self._connected,
            'running': self._running,
            'topics': self.topics
        }
