"""
通知管道异常定义
"""


class NotificationBridgeError(Exception):
    """通知桥接服务基础异常"""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ConfigUnavailable(NotificationBridgeError):
    """配置服务查询失败，按功能关闭处理"""

    def __init__(self, message: str, config_code: str = None):
        super().__init__(message)
        self.config_code = config_code


class PreferenceLookupFailed(NotificationBridgeError):
    """用户偏好查询失败，不能视为已授权"""


class TemplateMissing(NotificationBridgeError):
    """模板绑定或模板内容缺失"""


class TransportUnavailable(NotificationBridgeError):
    """渠道传输不可用（未连接、网络错误等）"""


class WorkflowTriggerFailed(NotificationBridgeError):
    """委托工作流触发失败"""


class SubscriberRegistrationFailed(NotificationBridgeError):
    """订阅者注册失败，仅记录日志，不中断触发"""
