"""
数据模型包

包含 API 请求、响应以及请求范围内图像数据的模型定义。
"""

from .images import ImageBlob, GenerationRequest, GeneratedImage, PublishedResult
from .requests import GenerateImageRequest, EditImageUrlRequest
from .responses import ImageResultResponse, HealthResponse, InfoResponse, ErrorResponse

__all__ = [
    "ImageBlob",
    "GenerationRequest",
    "GeneratedImage",
    "PublishedResult",
    "GenerateImageRequest",
    "EditImageUrlRequest",
    "ImageResultResponse",
    "HealthResponse",
    "InfoResponse",
    "ErrorResponse"
]
