"""
图像来源解析测试

测试 Drive 链接规范化、远程获取和上传文件暂存。
"""

import io
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.concurrency import run_in_threadpool

from models.images import ImageBlob
from services.exceptions import FetchError, UnsupportedMediaError
from services.image_source import (
    ImageSourceResolver, normalize_drive_url, staged_upload, read_staged_image,
    _copy_to_fd, _read_bytes
)


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def make_resolver(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return ImageSourceResolver(client)


class TestNormalizeDriveUrl:
    """Drive 链接规范化测试"""

    def test_view_link_rewritten(self):
        url = "https://drive.google.com/file/d/1AbC_dEf-123/view?usp=sharing"
        assert normalize_drive_url(url) == "https://drive.google.com/uc?export=download&id=1AbC_dEf-123"

    def test_view_link_without_query(self):
        url = "https://drive.google.com/file/d/xyz/view"
        assert normalize_drive_url(url) == "https://drive.google.com/uc?export=download&id=xyz"

    def test_non_drive_url_unchanged(self):
        url = "https://example.com/images/cat.png"
        assert normalize_drive_url(url) == url

    def test_direct_download_link_unchanged(self):
        url = "https://drive.google.com/uc?export=download&id=xyz"
        assert normalize_drive_url(url) == url

    def test_id_without_trailing_slash_unchanged(self):
        url = "https://drive.google.com/file/d/xyz"
        assert normalize_drive_url(url) == url


class TestImageSourceResolver:
    """远程图像获取测试"""

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        def handler(request):
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

        blob = await make_resolver(handler).fetch_image("https://example.com/cat.png")

        assert blob == ImageBlob(data=PNG_BYTES, mime_type="image/png")

    @pytest.mark.asyncio
    async def test_fetch_strips_content_type_parameters(self):
        def handler(request):
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/jpeg; charset=binary"})

        blob = await make_resolver(handler).fetch_image("https://example.com/cat.jpg")

        assert blob.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_fetch_follows_redirects(self):
        def handler(request):
            if request.url.host == "drive.google.com":
                return httpx.Response(303, headers={"location": "https://cdn.example.com/file"})
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

        blob = await make_resolver(handler).fetch_image("https://drive.google.com/uc?export=download&id=1")

        assert blob.data == PNG_BYTES

    @pytest.mark.asyncio
    async def test_fetch_error_status(self):
        def handler(request):
            return httpx.Response(404, content=b"not found", headers={"content-type": "text/html"})

        with pytest.raises(FetchError) as exc_info:
            await make_resolver(handler).fetch_image("https://example.com/missing.png")

        assert str(exc_info.value) == "Failed to fetch image from URL"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_fetch_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError) as exc_info:
            await make_resolver(handler).fetch_image("https://unreachable.example.com/a.png")

        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_fetch_non_image_content_type(self):
        def handler(request):
            return httpx.Response(200, content=b"<html></html>", headers={"content-type": "text/html"})

        with pytest.raises(UnsupportedMediaError) as exc_info:
            await make_resolver(handler).fetch_image("https://example.com/page")

        assert str(exc_info.value) == "Unsupported MIME type: text/html"

    @pytest.mark.asyncio
    async def test_fetch_missing_content_type(self):
        def handler(request):
            return httpx.Response(200, content=PNG_BYTES)

        with pytest.raises(UnsupportedMediaError):
            await make_resolver(handler).fetch_image("https://example.com/blob")


class TestStagedUpload:
    """上传文件暂存测试"""

    def make_upload(self, data=PNG_BYTES):
        return SimpleNamespace(file=io.BytesIO(data))

    @pytest.mark.asyncio
    async def test_staged_file_contents_and_cleanup(self, tmp_path):
        upload = self.make_upload()

        async with staged_upload(upload, str(tmp_path)) as path:
            assert os.path.dirname(path) == str(tmp_path)
            blob = await read_staged_image(path, "image/png")

        assert blob == ImageBlob(data=PNG_BYTES, mime_type="image/png")
        assert list(tmp_path.iterdir()) == []
        assert upload.file.closed

    @pytest.mark.asyncio
    async def test_cleanup_on_error(self, tmp_path):
        upload = self.make_upload()

        with pytest.raises(RuntimeError):
            async with staged_upload(upload, str(tmp_path)) as path:
                assert os.path.exists(path)
                raise RuntimeError("backend failed")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_mime_type_defaults(self, tmp_path):
        async with staged_upload(self.make_upload(), str(tmp_path)) as path:
            blob = await read_staged_image(path, None)

        assert blob.mime_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_file_io_runs_in_threadpool(self, tmp_path):
        offload = AsyncMock(wraps=run_in_threadpool)

        with patch("services.image_source.run_in_threadpool", offload):
            async with staged_upload(self.make_upload(), str(tmp_path)) as path:
                await read_staged_image(path, "image/png")

        offloaded = [call.args[0] for call in offload.call_args_list]
        assert offloaded == [_copy_to_fd, _read_bytes]
