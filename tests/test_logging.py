"""
日志系统测试

测试结构化日志配置和请求上下文。
"""

import structlog

from services.logging import (
    add_request_context, add_timestamp, configure_logging, get_logger,
    set_request_context, clear_request_context, request_id_var
)


class TestRequestContext:
    """请求上下文测试"""

    def teardown_method(self):
        clear_request_context()

    def test_set_generates_request_id(self):
        request_id = set_request_context()

        assert request_id
        assert request_id_var.get() == request_id

    def test_set_explicit_request_id(self):
        assert set_request_context("req-1") == "req-1"
        assert request_id_var.get() == "req-1"

    def test_clear(self):
        set_request_context("req-1")
        clear_request_context()
        assert request_id_var.get() == ""


class TestProcessors:
    """日志处理器测试"""

    def teardown_method(self):
        clear_request_context()

    def test_request_id_added(self):
        set_request_context("req-42")

        event = add_request_context(None, "info", {"event": "Prompt received"})

        assert event["request_id"] == "req-42"

    def test_no_request_id_outside_request(self):
        event = add_request_context(None, "info", {"event": "startup"})
        assert "request_id" not in event

    def test_timestamp_added(self):
        event = add_timestamp(None, "info", {"event": "x"})
        assert "timestamp" in event


class TestConfigureLogging:
    """日志配置测试"""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_json_renderer(self):
        configure_logging(log_level="INFO", json_format=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert add_request_context in processors

    def test_console_renderer(self):
        configure_logging(log_level="DEBUG", json_format=False)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_logger_usable_after_configure(self):
        configure_logging(log_level="INFO")

        get_logger("test").info("Image available", url="https://example.com/a.png")
