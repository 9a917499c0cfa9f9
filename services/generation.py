"""
生成编排器

向 Gemini 发送纯文本或“文本 + 内联图像”请求，并从响应中取出第一个内联图像部分。
"""

import base64
from typing import Any, Optional

from google import genai
from google.genai import types

from models.images import GeneratedImage, ImageBlob
from services.exceptions import GenerationError, NoImageReturnedError
from services.logging import get_logger

logger = get_logger(__name__)


def find_inline_image_part(response: Any) -> Optional[Any]:
    """
    按顺序扫描第一个候选结果的 content.parts，返回第一个带内联图像数据的部分

    文本部分（模型附带的说明文字）被忽略。
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and getattr(inline_data, "data", None):
            return part
    return None


def decode_inline_data(data) -> bytes:
    """SDK 返回原始字节；REST 风格的 base64 字符串在这里解码"""
    if isinstance(data, str):
        return base64.b64decode(data)
    return bytes(data)


class GenerationOrchestrator:
    """Gemini 图像生成编排器"""

    def __init__(self, client: genai.Client, model: str):
        self.client = client
        self.model = model

    async def generate(self, prompt: str) -> GeneratedImage:
        """根据文本生成图像"""
        logger.info("Generating image", model=self.model, prompt_length=len(prompt))
        return await self._generate_image(prompt, "No image returned")

    async def edit(self, prompt: str, image: ImageBlob) -> GeneratedImage:
        """根据文本和源图像生成编辑后的图像"""
        contents = [
            types.Part.from_text(text=prompt),
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
        ]
        logger.info(
            "Editing image",
            model=self.model,
            prompt_length=len(prompt),
            mime_type=image.mime_type,
            source_size=len(image.data)
        )
        return await self._generate_image(contents, "No edited image returned")

    async def _generate_image(self, contents, missing_message: str) -> GeneratedImage:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
            )
        except Exception as e:
            logger.error("Generative backend call failed", model=self.model, error=str(e))
            raise GenerationError(str(e), model=self.model) from e

        part = find_inline_image_part(response)
        if part is None:
            logger.warning("Generative backend returned no image part", model=self.model)
            raise NoImageReturnedError(missing_message)

        data = decode_inline_data(part.inline_data.data)
        if not data:
            raise NoImageReturnedError(missing_message)

        logger.info("Image received from backend", size=len(data))
        return GeneratedImage(data=data)

    async def aclose(self) -> None:
        """关闭 SDK 的异步 HTTP 客户端"""
        await self.client.aio.aclose()
