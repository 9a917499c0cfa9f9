"""
API 中间件

包含请求体大小限制和请求日志追踪中间件。
"""

import time

from fastapi import Request
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from services.error_handler import ErrorCode, create_error_response
from services.logging import set_request_context, clear_request_context, get_logger

logger = get_logger(__name__)


class BodySizeLimitMiddleware:
    """
    JSON 请求体大小限制中间件

    带 Content-Length 的请求按请求头判断。分块传输等没有可用 Content-Length 的请求
    在这里边接收边计数，超过限制立即返回 413，否则把已接收的请求体原样交给下游。
    需要替换 receive，所以写成 ASGI 中间件而不是 BaseHTTPMiddleware。
    """

    def __init__(self, app: ASGIApp, max_body_size: int = 10 * 1024 * 1024):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if not headers.get("content-type", "").startswith("application/json"):
            await self.app(scope, receive, send)
            return

        content_length = headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_body_size:
                await self._reject(scope, receive, send, int(content_length))
                return
            await self.app(scope, receive, send)
            return

        chunks = []
        received = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # 客户端已断开，交给下游按断开处理
                pending = message
                break

            body = message.get("body", b"")
            received += len(body)
            if received > self.max_body_size:
                await self._reject(scope, receive, send, received)
                return
            chunks.append(body)

            if not message.get("more_body", False):
                pending = {"type": "http.request", "body": b"".join(chunks), "more_body": False}
                break

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return pending
            return await receive()

        await self.app(scope, replay_receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.warning(
            "Request body too large",
            path=scope.get("path"),
            content_length=size,
            max_body_size=self.max_body_size
        )
        response = create_error_response(
            code=ErrorCode.PAYLOAD_TOO_LARGE.value,
            message=f"Request body exceeds {self.max_body_size} bytes",
            status_code=413
        )
        await response(scope, receive, send)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志和追踪中间件"""

    async def dispatch(self, request: Request, call_next):
        """处理请求日志和追踪"""
        request_id = set_request_context(request.headers.get("x-request-id"))
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=self._get_client_ip(request),
            content_length=request.headers.get("content-length", "0")
        )

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration=round(duration, 3)
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{duration:.3f}"
            return response

        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                duration=round(time.time() - start_time, 3)
            )
            raise
        finally:
            clear_request_context()

    def _get_client_ip(self, request: Request) -> str:
        """获取客户端 IP 地址"""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
