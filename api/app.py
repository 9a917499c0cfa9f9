"""
FastAPI 应用程序

主要的 FastAPI 应用实例，负责外部客户端的生命周期、中间件和异常处理器。
"""

import time
from typing import Optional
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from google import genai
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.manager import get_config_manager
from config.models import EDIT_SOURCES
from services.exceptions import ImageServiceError
from services.generation import GenerationOrchestrator
from services.image_source import ImageSourceResolver
from services.storage import StoragePublisher
from services.error_handler import error_handler
from services.logging import configure_logging, get_logger
from .middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware

SERVICE_NAME = "gemini-image-proxy"
SERVICE_VERSION = "1.0.0"


class ImageProxyAPI:
    """图像代理 API 应用类"""

    def __init__(self):
        self.config_manager = get_config_manager()
        self.orchestrator: Optional[GenerationOrchestrator] = None
        self.publisher: Optional[StoragePublisher] = None
        self.resolver: Optional[ImageSourceResolver] = None
        self.http_client: Optional[httpx.AsyncClient] = None
        self.app_start_time = None

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        """应用生命周期管理：启动时创建外部客户端，关闭时释放"""
        self.app_start_time = time.time()

        config = self.config_manager.get_config()

        configure_logging(
            log_level=config.log.level,
            log_file=config.log.file_path,
            json_format=config.log.json_format
        )

        startup_logger = get_logger("startup")
        startup_logger.info("Starting image proxy service...")
        startup_logger.info(
            "Configuration loaded",
            server_host=config.server.host,
            server_port=config.server.port,
            edit_source=app.state.edit_source,
            model=config.gemini.model,
            log_level=config.log.level
        )

        if not self.config_manager.validate_config():
            startup_logger.warning("Configuration incomplete, some requests will fail")

        self.http_client = httpx.AsyncClient(
            timeout=config.fetch.timeout,
            follow_redirects=config.fetch.follow_redirects
        )
        self.resolver = ImageSourceResolver(self.http_client)

        if config.gemini.api_key:
            self.orchestrator = GenerationOrchestrator(
                client=genai.Client(api_key=config.gemini.api_key),
                model=config.gemini.model
            )
            startup_logger.info("Generation client initialized", model=config.gemini.model)
        else:
            # 不阻止服务启动，生成请求会返回 500
            startup_logger.error("GEMINI_API_KEY not configured, generation client not initialized")

        self.publisher = StoragePublisher(config.storage)
        startup_logger.info("Image proxy service started successfully")

        yield

        shutdown_logger = get_logger("shutdown")
        shutdown_logger.info("Shutting down image proxy service...")

        await self.http_client.aclose()
        if self.orchestrator is not None:
            await self.orchestrator.aclose()
        self.http_client = None
        self.resolver = None
        self.orchestrator = None
        self.publisher = None

        shutdown_logger.info("Image proxy service shut down")

    def create_app(self, edit_source: Optional[str] = None) -> FastAPI:
        """
        创建 FastAPI 应用实例（不含路由）

        Args:
            edit_source: 编辑接口的图像来源，默认使用配置中的 server.edit_source
        """
        config = self.config_manager.get_config()
        edit_source = (edit_source or config.server.edit_source).lower()
        if edit_source not in EDIT_SOURCES:
            raise ValueError(f"edit_source 必须是 {list(EDIT_SOURCES)} 中的一个")

        app = FastAPI(
            title="Gemini Image Proxy",
            description="基于 Gemini 的图像生成/编辑代理服务，结果发布到 Cloudinary",
            version=SERVICE_VERSION,
            lifespan=self.lifespan
        )
        app.state.edit_source = edit_source

        app.add_middleware(BodySizeLimitMiddleware, max_body_size=config.server.max_body_size)

        # 请求日志和追踪中间件（最外层）
        app.add_middleware(RequestLoggingMiddleware)

        # 全局异常处理器 - 使用统一的错误处理系统
        @app.exception_handler(ImageServiceError)
        async def service_exception_handler(request: Request, exc: ImageServiceError):
            """服务异常处理器"""
            return error_handler.handle_exception(request, exc)

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """请求验证异常处理器"""
            return error_handler.handle_exception(request, exc)

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """HTTP 异常处理器"""
            return error_handler.handle_exception(request, exc)

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """通用异常处理器"""
            return error_handler.handle_exception(request, exc)

        return app

    def get_orchestrator(self) -> GenerationOrchestrator:
        """获取生成编排器实例"""
        if self.orchestrator is None:
            raise ImageServiceError("Generation backend not configured")
        return self.orchestrator

    def get_publisher(self) -> StoragePublisher:
        """获取存储发布器实例"""
        if self.publisher is None:
            raise ImageServiceError("Storage backend not initialized")
        return self.publisher

    def get_resolver(self) -> ImageSourceResolver:
        """获取图像来源解析器实例"""
        if self.resolver is None:
            raise ImageServiceError("Image source resolver not initialized")
        return self.resolver

    def get_upload_dir(self) -> str:
        """获取上传暂存目录"""
        return self.config_manager.get_config().server.upload_dir

    def get_uptime(self) -> float:
        """获取服务运行时间（秒）"""
        if self.app_start_time is None:
            return 0.0
        return time.time() - self.app_start_time


# 全局应用实例
image_api = ImageProxyAPI()
