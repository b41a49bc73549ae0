"""配置管理模块"""

import json
from typing import Dict, List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


DEFAULT_WORKFLOW_MAP = {
    "PGR_CREATE": "pgr-complaint-created",
    "PGR_CREATED": "pgr-complaint-created",
    "PGR_UPDATE": "pgr-status-changed",
    "PGR_STATUS_CHANGE": "pgr-status-changed",
    "PGR_RESOLVED": "pgr-complaint-resolved",
}


class KafkaConfig(BaseSettings):
    """Kafka配置"""

    kafka_enabled: bool = Field(default=True)
    kafka_brokers: str = Field(default="kafka:9092")
    kafka_group_id: str = Field(default="digit-novu-bridge")
    kafka_topics: str = Field(default="pgr-create,pgr-update")
    kafka_retry_delay: float = Field(default=5.0)

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def brokers(self) -> List[str]:
        """获取Broker列表"""
        return [b.strip() for b in self.kafka_brokers.split(",") if b.strip()]

    @property
    def topics(self) -> List[str]:
        """获取订阅的主题列表"""
        return [t.strip() for t in self.kafka_topics.split(",") if t.strip()]


class ServicesConfig(BaseSettings):
    """外部服务配置"""

    config_service_url: str = Field(default="http://digit-config-service:8201")
    user_preferences_url: str = Field(default="http://digit-user-preferences:8200")
    baileys_provider_url: str = Field(default="http://baileys-provider:8203")
    novu_api_key: str = Field(default="")
    novu_api_url: str = Field(default="http://novu-api:3000")
    http_timeout: float = Field(default=10.0)

    model_config = {"env_file": ".env", "extra": "ignore"}


class DeliveryConfig(BaseSettings):
    """投递策略配置"""

    # workflow: 由Novu管理模板和投递; direct: 本服务渲染模板并直接发送
    dispatch_mode: str = Field(default="direct")
    use_baileys: bool = Field(default=False)
    workflow_map: str = Field(default=json.dumps(DEFAULT_WORKFLOW_MAP))
    channel: str = Field(default="WHATSAPP")
    config_namespace: str = Field(default="notification-orchestrator")
    preference_code: str = Field(default="USER_NOTIFICATION_PREFERENCES")
    default_tenant_id: str = Field(default="pg.citya")
    default_locale: str = Field(default="en_IN")
    default_rate_limit: int = Field(default=100)
    tenant_timezone: str = Field(default="Asia/Kolkata")
    phone_country_code: str = Field(default="91")

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def workflows(self) -> Dict[str, str]:
        """解析事件类型到工作流ID的映射"""
        return json.loads(self.workflow_map) if self.workflow_map else {}


class BridgeConfig(BaseSettings):
    """应用配置"""

    name: str = Field(default="digit-novu-bridge", validation_alias="APP_NAME")
    version: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8202, validation_alias="SERVER_PORT")
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Kafka配置
    kafka: KafkaConfig = KafkaConfig()

    # 外部服务配置
    services: ServicesConfig = ServicesConfig()

    # 投递配置
    delivery: DeliveryConfig = DeliveryConfig()

    model_config = {"env_file": ".env", "extra": "ignore"}


# 全局配置实例
bridge_config = BridgeConfig()


def get_settings() -> BridgeConfig:
    """获取全局配置"""
    return bridge_config
