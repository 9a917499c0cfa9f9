"""
结构化日志系统

提供统一的日志配置和请求上下文追踪。
"""

import logging
import uuid
from datetime import datetime
from contextvars import ContextVar

import structlog
from structlog.stdlib import LoggerFactory

# 请求上下文变量
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


def add_request_context(logger, method_name, event_dict):
    """添加请求上下文到日志"""
    request_id = request_id_var.get('')

    if request_id:
        event_dict['request_id'] = request_id

    return event_dict


def add_timestamp(logger, method_name, event_dict):
    """添加时间戳到日志"""
    event_dict['timestamp'] = datetime.now().isoformat()
    return event_dict


def configure_logging(log_level: str = "INFO", log_file: str = None, json_format: bool = True):
    """配置结构化日志"""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_request_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 配置标准库日志
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        handlers=[
            logging.StreamHandler(),
            *([logging.FileHandler(log_file, encoding='utf-8')] if log_file else [])
        ]
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """获取结构化日志器"""
    return structlog.get_logger(name)


def set_request_context(request_id: str = None) -> str:
    """设置请求上下文"""
    if request_id is None:
        request_id = str(uuid.uuid4())

    request_id_var.set(request_id)
    return request_id


def clear_request_context():
    """清除请求上下文"""
    request_id_var.set('')
