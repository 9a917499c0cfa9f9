"""
存储发布器

把生成的图像字节上传到 Cloudinary，并返回安全访问地址。
"""

import io
import time
from typing import Callable

import cloudinary.uploader
from fastapi.concurrency import run_in_threadpool

from config.models import StorageConfig
from models.images import PublishedResult
from services.exceptions import UploadError
from services.logging import get_logger

logger = get_logger(__name__)


class StoragePublisher:
    """Cloudinary 上传封装"""

    def __init__(self, config: StorageConfig, clock: Callable[[], float] = time.time):
        """
        Args:
            config: 存储后端凭据，每次上传时显式传入，不修改 cloudinary 全局配置
            clock: 返回秒级时间戳的函数，用于生成标识符
        """
        self.config = config
        self.clock = clock

    def make_public_id(self, prefix: str) -> str:
        """前缀 + 毫秒时间戳；同一毫秒内的两次调用会得到相同的标识符"""
        return f"{prefix}{int(self.clock() * 1000)}"

    async def publish(self, data: bytes, prefix: str) -> PublishedResult:
        """
        上传图像字节

        Args:
            data: 原始图像字节
            prefix: 标识符前缀，例如 "gen_" 或 "edit_"

        Returns:
            PublishedResult: 安全访问地址和标识符

        Raises:
            UploadError: 存储后端报告任何错误
        """
        public_id = self.make_public_id(prefix)
        logger.info("Uploading image to storage", public_id=public_id, size=len(data))

        try:
            result = await run_in_threadpool(self._upload, data, public_id)
        except Exception as e:
            logger.error(
                "Storage upload failed",
                public_id=public_id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise UploadError(str(e), public_id=public_id) from e

        url = result.get("secure_url") if result else None
        if not url:
            raise UploadError("Storage backend returned no URL", public_id=public_id)

        logger.info("Image available", url=url, public_id=public_id)
        return PublishedResult(url=url, public_id=result.get("public_id", public_id))

    def _upload(self, data: bytes, public_id: str) -> dict:
        options = dict(
            public_id=public_id,
            resource_type="image",
            cloud_name=self.config.cloud_name,
            api_key=self.config.api_key,
            api_secret=self.config.api_secret,
        )
        if self.config.folder:
            options["folder"] = self.config.folder
        return cloudinary.uploader.upload(io.BytesIO(data), **options)
