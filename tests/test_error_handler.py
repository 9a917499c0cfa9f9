"""
错误处理系统测试

测试异常到状态码的映射和响应格式化功能。
"""

import json

import pytest
from unittest.mock import Mock
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError

from services.error_handler import ErrorHandler, ErrorCode, create_error_response
from services.exceptions import (
    ImageServiceError, ValidationError, FetchError, UnsupportedMediaError,
    NoImageReturnedError, GenerationError, UploadError
)


class TestErrorHandler:
    """错误处理器测试"""

    def setup_method(self):
        """设置测试"""
        self.error_handler = ErrorHandler()
        self.mock_request = Mock(spec=Request)
        self.mock_request.url.path = "/generate-image"
        self.mock_request.method = "POST"
        self.mock_request.headers = {"user-agent": "test-client"}

    def handle(self, exc):
        response = self.error_handler.handle_exception(self.mock_request, exc)
        return response.status_code, json.loads(response.body.decode())

    def test_validation_error_is_400(self):
        status, body = self.handle(ValidationError("Missing prompt", parameter="prompt"))

        assert status == 400
        assert body == {"error": "Missing prompt", "code": "VALIDATION_ERROR"}

    def test_request_validation_error_is_400(self):
        exc = RequestValidationError([{"loc": ["body"], "msg": "Invalid JSON", "type": "json_invalid"}])

        status, body = self.handle(exc)

        assert status == 400
        assert body["code"] == ErrorCode.VALIDATION_ERROR.value

    def test_http_exception_keeps_status(self):
        status, body = self.handle(HTTPException(status_code=404, detail="Not Found"))

        assert status == 404
        assert body == {"error": "Not Found", "code": "HTTP_404"}

    @pytest.mark.parametrize("exc, code", [
        (FetchError(), "FETCH_ERROR"),
        (UnsupportedMediaError("text/html"), "UNSUPPORTED_MEDIA_TYPE"),
        (NoImageReturnedError(), "NO_IMAGE_RETURNED"),
        (GenerationError("quota exceeded"), "GENERATION_ERROR"),
        (UploadError("Invalid Signature"), "UPLOAD_ERROR"),
    ])
    def test_downstream_faults_are_500_with_message(self, exc, code):
        status, body = self.handle(exc)

        assert status == 500
        assert body["code"] == code
        assert body["error"] == str(exc)

    def test_unsupported_media_message(self):
        _, body = self.handle(UnsupportedMediaError("text/html"))
        assert body["error"] == "Unsupported MIME type: text/html"

    def test_unmapped_service_error(self):
        status, body = self.handle(ImageServiceError("Generation backend not configured"))

        assert status == 500
        assert body == {"error": "Generation backend not configured", "code": "INTERNAL_SERVER_ERROR"}

    def test_unknown_exception_exposes_message(self):
        status, body = self.handle(RuntimeError("socket hang up"))

        assert status == 500
        assert body["error"] == "socket hang up"
        assert body["code"] == "INTERNAL_SERVER_ERROR"

    def test_unknown_exception_without_message(self):
        _, body = self.handle(KeyError())
        assert body["error"] == "KeyError"


def test_create_error_response():
    response = create_error_response("PAYLOAD_TOO_LARGE", "too big", status_code=413)

    assert response.status_code == 413
    assert json.loads(response.body.decode()) == {"error": "too big", "code": "PAYLOAD_TOO_LARGE"}
