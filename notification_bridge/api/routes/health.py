"""
健康检查API端点
"""

import time
from typing import Dict, Any

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_services
from ...bootstrap import BridgeServices

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health_check(request: Request,
                       services: BridgeServices = Depends(get_services)) -> Dict[str, Any]:
    """基本健康检查：接入连接状态与工作流配置"""
    settings = request.app.state.settings
    transport_url = settings.services.baileys_provider_url if services.transport_client else None
    return {
        "status": "UP",
        "service": settings.name,
        "timestamp": time.time(),
        "kafka": "connected" if services.ingestion.is_connected else "disconnected",
        "novu": "configured" if services.workflow_configured else "not configured",
        "mode": services.dispatch_mode.value,
        "transportUrl": transport_url
    }


@router.get("/health/transport")
async def transport_health(services: BridgeServices = Depends(get_services)) -> Dict[str, Any]:
    """渠道传输连接状态"""
    if services.transport_client is None:
        return {"status": "not configured", "connected": False}

    start_time = time.time()
    transport_status = await services.transport_client.get_status()
    return {
        "status": "healthy" if transport_status["connected"] else "unhealthy",
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
        **transport_status
    }


@router.get("/actuator/health")
async def liveness() -> Dict[str, str]:
    """存活检查"""
    return {"status": "UP"}
