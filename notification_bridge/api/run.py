"""API服务器启动脚本"""

import argparse

import uvicorn
from shared.config import bridge_config


def parse_args():
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="通知桥接服务")
    parser.add_argument("--host", type=str, default=bridge_config.host, help="监听地址")
    parser.add_argument("--port", type=int, default=bridge_config.port, help="监听端口")
    return parser.parse_args()


def main():
    """启动API服务器"""
    args = parse_args()
    uvicorn.run(
        "notification_bridge.api.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=bridge_config.debug,
        log_level="debug" if bridge_config.debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
