"""FastAPI主应用程序"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from shared.config import BridgeConfig, get_settings
from shared.logger import setup_logger
from ..bootstrap import BridgeServices, build_services
from .middleware import RequestLoggingMiddleware
from .exceptions import setup_exception_handlers


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings: BridgeConfig = app.state.settings
    services = getattr(app.state, "services", None)
    if services is None:
        services = build_services(settings)
        app.state.services = services
    logger.info(f"启动 {settings.name} v{settings.version}")

    if settings.kafka.kafka_enabled:
        await services.ingestion.start()
    else:
        logger.info("Kafka接入已禁用，仅提供手动触发")

    yield

    await services.close()
    logger.info("应用关闭")


def create_app(settings: BridgeConfig = None, services: BridgeServices = None) -> FastAPI:
    """
    创建FastAPI应用

    Args:
        settings: 应用配置，默认使用全局配置
        services: 预先装配的服务（测试注入），为空时在启动阶段装配
    """
    settings = settings or get_settings()
    setup_logger("notification_bridge", level=settings.log_level, log_file=settings.log_file)

    app = FastAPI(
        title=settings.name,
        version=settings.version,
        description="领域事件到聊天渠道的通知桥接服务",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan
    )
    app.state.settings = settings
    if services is not None:
        app.state.services = services

    app.add_middleware(RequestLoggingMiddleware)
    setup_exception_handlers(app)
    register_routes(app)

    return app


def register_routes(app: FastAPI):
    """注册路由"""
    from .routes import health, notifications
    app.include_router(health.router)
    app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["通知"])
