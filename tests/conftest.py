"""
测试公共夹具

提供模拟的 Gemini 客户端和响应构造工具。
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest


def text_part(text):
    return SimpleNamespace(text=text, inline_data=None)


def image_part(data, mime_type="image/png"):
    return SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))


def make_response(*parts):
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))]
    )


def make_genai_client(response=None, error=None):
    client = Mock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=error)
    client.aio.aclose = AsyncMock()
    return client


@pytest.fixture
def parts():
    """响应部分构造工具"""
    return SimpleNamespace(text=text_part, image=image_part, response=make_response)


@pytest.fixture
def genai_client_factory():
    """模拟 genai.Client 的工厂"""
    return make_genai_client
