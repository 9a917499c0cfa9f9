"""
图像来源解析

URL 模式：把 Google Drive 分享链接改写为直接下载链接，并通过 HTTP 获取图像字节。
上传模式：把上传文件暂存到临时目录，读取其字节和声明的 MIME 类型，
请求结束时无论成功与否都删除暂存文件。
"""

import os
import re
import shutil
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, BinaryIO, Optional

import httpx
from fastapi.concurrency import run_in_threadpool

from models.images import ImageBlob
from services.exceptions import FetchError, UnsupportedMediaError
from services.logging import get_logger

logger = get_logger(__name__)

DRIVE_VIEW_PATTERN = re.compile(r"/file/d/([^/]+)/")
DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc?export=download&id={file_id}"


def normalize_drive_url(url: str) -> str:
    """把 Drive "view" 链接改写为直接下载链接，其他 URL 原样返回"""
    match = DRIVE_VIEW_PATTERN.search(url)
    if match:
        return DRIVE_DOWNLOAD_URL.format(file_id=match.group(1))
    return url


class ImageSourceResolver:
    """远程图像获取器"""

    def __init__(self, client: httpx.AsyncClient):
        """
        Args:
            client: 由应用生命周期管理的 HTTP 客户端
        """
        self.client = client

    async def fetch_image(self, url: str) -> ImageBlob:
        """
        获取远程图像

        Args:
            url: 图像地址（已规范化）

        Returns:
            ImageBlob: 图像字节和响应声明的 MIME 类型

        Raises:
            FetchError: 请求失败或响应状态非 2xx
            UnsupportedMediaError: content-type 缺失或不是 image/*
        """
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Image fetch failed", url=url, error=str(e))
            raise FetchError(f"Failed to fetch image from URL: {e}", url=url)

        if not response.is_success:
            logger.warning("Image fetch returned error status", url=url, status_code=response.status_code)
            raise FetchError(url=url, status_code=response.status_code)

        content_type = response.headers.get("content-type")
        if not content_type or not content_type.lower().startswith("image/"):
            raise UnsupportedMediaError(content_type)

        mime_type = content_type.split(";", 1)[0].strip()
        data = response.content

        logger.info("Image fetched", url=url, mime_type=mime_type, size=len(data))
        return ImageBlob(data=data, mime_type=mime_type)


def _copy_to_fd(source: BinaryIO, fd: int) -> None:
    with os.fdopen(fd, "wb") as staged:
        shutil.copyfileobj(source, staged)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


@asynccontextmanager
async def staged_upload(upload, upload_dir: str) -> AsyncIterator[str]:
    """
    把上传文件写入 upload_dir 下的临时文件并返回其路径

    复制在工作线程中进行。退出上下文时删除临时文件并关闭上传流。

    Args:
        upload: FastAPI UploadFile（或任何带 file 属性的对象）
        upload_dir: 暂存目录
    """
    fd, path = tempfile.mkstemp(dir=upload_dir, prefix="upload_")
    try:
        await run_in_threadpool(_copy_to_fd, upload.file, fd)
        logger.debug("Upload staged", path=path)
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)
            logger.debug("Staged upload removed", path=path)
        upload.file.close()


async def read_staged_image(path: str, mime_type: Optional[str]) -> ImageBlob:
    """读取暂存文件，MIME 类型使用上传时声明的值"""
    data = await run_in_threadpool(_read_bytes, path)
    return ImageBlob(data=data, mime_type=mime_type or "application/octet-stream")
