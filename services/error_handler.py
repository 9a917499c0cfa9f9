"""
统一错误处理系统

把所有异常映射为统一格式的 JSON 错误响应。

除参数验证类错误返回 4xx 外，所有下游故障（获取、生成、上传）
统一返回 500，并把原始错误信息返回给调用方。
"""

from typing import Dict, Any, Type
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from models.responses import ErrorResponse
from services.logging import get_logger
from services.exceptions import (
    ValidationError, FetchError, UnsupportedMediaError,
    NoImageReturnedError, GenerationError, UploadError
)

logger = get_logger(__name__)


class ErrorCode(Enum):
    """标准错误代码"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    NO_IMAGE_RETURNED = "NO_IMAGE_RETURNED"
    GENERATION_ERROR = "GENERATION_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ErrorHandler:
    """统一错误处理器"""

    def __init__(self):
        self.error_mappings = self._setup_error_mappings()

    def _setup_error_mappings(self) -> Dict[Type[Exception], Dict[str, Any]]:
        """设置错误映射，按顺序匹配第一个 isinstance 命中的类型"""
        return {
            ValidationError: {
                "get_code": lambda e: ErrorCode.VALIDATION_ERROR.value,
                "get_message": lambda e: str(e),
                "get_status_code": lambda e: 400
            },

            # 请求体无法解析（例如非法 JSON）
            RequestValidationError: {
                "get_code": lambda e: ErrorCode.VALIDATION_ERROR.value,
                "get_message": lambda e: "Invalid request body",
                "get_status_code": lambda e: 400
            },

            StarletteHTTPException: {
                "get_code": lambda e: f"HTTP_{e.status_code}",
                "get_message": lambda e: str(e.detail),
                "get_status_code": lambda e: e.status_code
            },

            FetchError: {
                "get_code": lambda e: ErrorCode.FETCH_ERROR.value,
                "get_message": lambda e: str(e),
                "get_status_code": lambda e: 500
            },

            UnsupportedMediaError: {
                "get_code": lambda e: ErrorCode.UNSUPPORTED_MEDIA_TYPE.value,
                "get_message": lambda e: str(e),
                "get_status_code": lambda e: 500
            },

            NoImageReturnedError: {
                "get_code": lambda e: ErrorCode.NO_IMAGE_RETURNED.value,
                "get_message": lambda e: str(e),
                "get_status_code": lambda e: 500
            },

            GenerationError: {
                "get_code": lambda e: ErrorCode.GENERATION_ERROR.value,
                "get_message": lambda e: str(e),
                "get_status_code": lambda e: 500
            },

            UploadError: {
                "get_code": lambda e: ErrorCode.UPLOAD_ERROR.value,
                "get_message": lambda e: str(e),
                "get_status_code": lambda e: 500
            },
        }

    def handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """处理异常并返回统一格式的响应"""
        error_info = self._get_error_info(exc)

        self._log_error(request, exc, error_info)

        return create_error_response(
            code=error_info["code"],
            message=error_info["message"],
            status_code=error_info["status_code"]
        )

    def _get_error_info(self, exc: Exception) -> Dict[str, Any]:
        """获取错误信息"""
        for error_type, mapping in self.error_mappings.items():
            if isinstance(exc, error_type):
                return {
                    "code": mapping["get_code"](exc),
                    "message": mapping["get_message"](exc),
                    "status_code": mapping["get_status_code"](exc)
                }

        # 未知错误同样返回原始错误信息
        return {
            "code": ErrorCode.INTERNAL_SERVER_ERROR.value,
            "message": str(exc) or type(exc).__name__,
            "status_code": 500
        }

    def _log_error(self, request: Request, exc: Exception, error_info: Dict[str, Any]):
        """记录错误日志"""
        status_code = error_info["status_code"]
        log_method = logger.error if status_code >= 500 else logger.warning

        log_method(
            "Request failed",
            error_code=error_info["code"],
            status_code=status_code,
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            exc_info=exc if status_code >= 500 and not isinstance(exc, StarletteHTTPException) else False
        )


# 全局错误处理器实例
error_handler = ErrorHandler()


def create_error_response(code: str, message: str, status_code: int = 500) -> JSONResponse:
    """创建标准错误响应"""
    error_response = ErrorResponse(error=message, code=code)

    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump()
    )
