"""
请求范围内的图像数据类型

这些对象只在单个请求/响应周期内存在，不做任何持久化。
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ImageBlob:
    """原始图像字节及其 MIME 类型"""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class GenerationRequest:
    """一次生成或编辑请求"""

    prompt: str
    source_image: Optional[ImageBlob] = None

    @property
    def is_edit(self) -> bool:
        return self.source_image is not None


@dataclass(frozen=True)
class GeneratedImage:
    """生成后端返回的图像字节"""

    data: bytes

    def __post_init__(self):
        if not self.data:
            raise ValueError("GeneratedImage data must not be empty")


@dataclass(frozen=True)
class PublishedResult:
    """存储后端返回的发布结果"""

    url: str
    public_id: str
