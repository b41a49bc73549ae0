"""API依赖注入"""

from fastapi import HTTPException, Request, status

from ..bootstrap import BridgeServices


def get_services(request: Request) -> BridgeServices:
    """从应用状态获取运行期服务"""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification services not initialized"
        )
    return services
