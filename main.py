"""
Main entry point for the Gemini image proxy service.
"""

import logging
import os
import sys
import argparse

import uvicorn

from config.manager import init_config
from config.models import EDIT_SOURCES

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description="Gemini Image Proxy Service")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="配置文件路径 (YAML/JSON，默认只使用环境变量)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="服务器主机地址 (覆盖配置文件)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="服务器端口 (覆盖配置文件)"
    )
    parser.add_argument(
        "--variant",
        type=str,
        choices=list(EDIT_SOURCES),
        default=None,
        help="编辑接口的图像来源：url 接收远程地址，upload 接收上传文件"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="启用自动重载 (开发模式)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="日志级别"
    )

    return parser.parse_args(argv)


def export_overrides(args, log_level: str) -> None:
    """
    把命令行覆盖写入环境变量

    自动重载时 uvicorn 在子进程中按导入字符串重新创建应用，
    子进程只能通过环境变量拿到这些设置。
    """
    if args.config:
        os.environ["CONFIG_FILE"] = args.config
    if args.variant:
        os.environ["EDIT_SOURCE"] = args.variant
    os.environ["LOG_LEVEL"] = log_level


def main(argv=None):
    """主函数"""
    args = parse_args(argv)

    try:
        logger.info("Initializing configuration...")
        config = init_config(args.config)

        log_level = args.log_level or config.log.level
        config.log.level = log_level
        host = args.host or config.server.host
        port = args.port or config.server.port

        logger.info(f"Starting server on {host}:{port}")
        logger.info(f"Model: {config.gemini.model}")

        if args.reload:
            export_overrides(args, log_level)
            logger.info(f"Edit source: {args.variant or config.server.edit_source}")
            app = "api:app"
        else:
            # 配置加载后再导入，确保应用按最终配置创建
            from api import build_app

            app = build_app(args.variant)
            logger.info(f"Edit source: {app.state.edit_source}")

        uvicorn.run(
            app,
            host=host,
            port=port,
            reload=args.reload,
            log_level=log_level.lower(),
            access_log=True
        )

    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except Exception as e:
        logger.error(f"Failed to start service: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
