"""通知触发API路由"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from shared.models.event import Event
from ..dependencies import get_services
from ...bootstrap import BridgeServices

router = APIRouter()


@router.post("/_trigger", summary="手动触发通知")
async def trigger_notification(
    event: Event,
    services: BridgeServices = Depends(get_services)
) -> Dict[str, Any]:
    """
    手动运行一次通知管道（测试或重放）

    - **eventType**: 事件类型，如 PGR_CREATE
    - **tenantId**: 租户ID
    - **recipient**: 接收者 {userId, phone}
    - **data**: 模板数据
    """
    outcome = await services.ingestion.trigger(event)
    return {
        "responseInfo": {"status": "successful"},
        "result": outcome.to_dict()
    }


@router.get("/stats", summary="通知管道统计")
async def notification_stats(services: BridgeServices = Depends(get_services)) -> Dict[str, Any]:
    """获取编排器与接入统计信息"""
    return {
        "orchestrator": services.orchestrator.get_statistics(),
        "ingestion": services.ingestion.get_stats()
    }
