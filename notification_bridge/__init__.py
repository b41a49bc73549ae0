"""
通知桥接服务

订阅领域事件，经策略门控后投递到聊天渠道。
"""

__version__ = "0.1.0"
