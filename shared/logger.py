"""服务日志系统"""

import os
import sys
import logging
import logging.handlers
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'


def setup_logger(
    name: str = "notification_bridge",
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    设置服务日志系统

    始终输出到标准输出（容器日志）；配置了 log_file 时额外写入轮转文件。

    Args:
        name: 日志器名称
        level: 日志级别
        log_file: 日志文件路径
        max_bytes: 单个日志文件最大字节数
        backup_count: 备份文件数量

    Returns:
        配置好的日志器
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
            ))
        except OSError as e:
            logger.error(f"无法创建日志文件处理器: {e}")

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if len(handlers) > 1:
        logger.info(f"日志系统已初始化，日志文件: {log_file}")
    return logger


def bind_transaction(logger: logging.Logger, transaction_id: str) -> logging.LoggerAdapter:
    """返回带事务ID前缀的日志适配器，同一事件的管道日志可按事务ID关联"""
    return TransactionLoggerAdapter(logger, {"transaction_id": transaction_id})


class TransactionLoggerAdapter(logging.LoggerAdapter):
    """在每条日志前加上 [transaction_id]"""

    def process(self, msg, kwargs):
        return f"[{self.extra['transaction_id']}] {msg}", kwargs
