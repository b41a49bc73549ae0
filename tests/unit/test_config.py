"""配置与装配测试"""

import pytest

from notification_bridge.bootstrap import build_services, resolve_dispatch_mode
from notification_bridge.notifications.dispatchers import DirectSendDispatcher, WorkflowDispatcher
from notification_bridge.notifications.rate_limiter import RateLimiter
from notification_bridge.notifications.types import DispatchMode
from shared.config import (
    DEFAULT_WORKFLOW_MAP, BridgeConfig, DeliveryConfig, KafkaConfig, ServicesConfig
)


class TestSettings:
    """测试配置解析"""

    def test_defaults(self):
        settings = BridgeConfig()

        assert settings.port == 8202
        assert settings.delivery.default_rate_limit == 100
        assert settings.delivery.default_locale == "en_IN"
        assert settings.delivery.workflows == DEFAULT_WORKFLOW_MAP

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("KAFKA_TOPICS", "pgr-create, pgr-update ,pgr-resolved")
        monkeypatch.setenv("KAFKA_BROKERS", "k1:9092,k2:9092")
        monkeypatch.setenv("USE_BAILEYS", "true")

        kafka = KafkaConfig()
        delivery = DeliveryConfig()

        assert kafka.topics == ["pgr-create", "pgr-update", "pgr-resolved"]
        assert kafka.brokers == ["k1:9092", "k2:9092"]
        assert delivery.use_baileys is True

    def test_workflow_map_from_json(self):
        delivery = DeliveryConfig(workflow_map='{"PGR_REOPEN": "pgr-reopened"}')
        assert delivery.workflows == {"PGR_REOPEN": "pgr-reopened"}


def make_settings(dispatch_mode="direct", novu_api_key="", use_baileys=False) -> BridgeConfig:
    return BridgeConfig(
        kafka=KafkaConfig(kafka_enabled=False),
        services=ServicesConfig(novu_api_key=novu_api_key),
        delivery=DeliveryConfig(dispatch_mode=dispatch_mode, use_baileys=use_baileys)
    )


class TestBootstrap:
    """测试服务装配"""

    def test_workflow_without_api_key_falls_back(self):
        """测试未配置API Key时回退为直接发送"""
        assert resolve_dispatch_mode(make_settings("workflow")) == DispatchMode.DIRECT

    def test_workflow_with_api_key(self):
        assert resolve_dispatch_mode(make_settings("workflow", "key")) == DispatchMode.WORKFLOW

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            resolve_dispatch_mode(make_settings("carrier-pigeon"))

    def test_build_direct_simulated(self):
        services = build_services(make_settings())

        assert services.dispatch_mode == DispatchMode.DIRECT
        assert services.transport_client is None
        assert isinstance(services.orchestrator.dispatcher, DirectSendDispatcher)
        assert services.orchestrator.dispatcher.transport_client is None
        assert services.workflow_configured is False

    def test_build_direct_with_transport(self):
        services = build_services(make_settings(use_baileys=True))

        assert services.transport_client is services.orchestrator.dispatcher.transport_client

    def test_build_workflow(self):
        limiter = RateLimiter()
        services = build_services(make_settings("workflow", "key"), rate_limiter=limiter)

        dispatcher = services.orchestrator.dispatcher
        assert isinstance(dispatcher, WorkflowDispatcher)
        assert dispatcher.webhook_url == "http://baileys-provider:8203/baileys/novu-webhook"
        assert services.orchestrator.rate_limiter is limiter
        assert services.workflow_configured is True


class TestLogger:
    """测试日志配置"""

    def test_rotating_file_handler(self, tmp_path):
        import logging.handlers
        from shared.logger import setup_logger

        log_file = tmp_path / "logs" / "bridge.log"
        logger = setup_logger("test_bridge_file", log_file=str(log_file))

        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)
        assert log_file.parent.exists()
        assert setup_logger("test_bridge_file") is logger
        assert len(logger.handlers) == 2

    def test_transaction_prefix(self, caplog):
        import logging
        from shared.logger import bind_transaction

        log = bind_transaction(logging.getLogger("test_bridge_txn"), "PGR_CREATE-WHATSAPP-u-1-1")
        with caplog.at_level(logging.INFO, logger="test_bridge_txn"):
            log.info("步骤1")

        assert caplog.records[-1].getMessage() == "[PGR_CREATE-WHATSAPP-u-1-1] 步骤1"


class TestServicesClose:
    """测试服务关闭顺序"""

    @pytest.mark.asyncio
    async def test_close_continues_after_ingestion_failure(self):
        from unittest.mock import AsyncMock, Mock
        from notification_bridge.bootstrap import BridgeServices

        ingestion = Mock()
        ingestion.stop = AsyncMock(side_effect=RuntimeError("consumer crashed"))
        orchestrator = Mock()
        orchestrator.close = AsyncMock()
        transport = Mock()
        transport.close = AsyncMock()
        services = BridgeServices(orchestrator, ingestion, transport, False, DispatchMode.DIRECT)

        with pytest.raises(RuntimeError):
            await services.close()

        orchestrator.close.assert_awaited_once()
        transport.close.assert_awaited_once()

    def test_direct_mode_with_api_key_uses_workflow_delivery(self):
        services = build_services(make_settings("direct", "key"))

        dispatcher = services.orchestrator.dispatcher
        assert isinstance(dispatcher, DirectSendDispatcher)
        assert dispatcher.transport_client is None
        assert dispatcher.workflow_client is not None
