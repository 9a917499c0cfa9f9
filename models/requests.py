"""
API 请求模型定义

字段均为可选，缺失或为空的字段由路由层统一转换为 400 错误，
而不是交给 Pydantic 返回 422。
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class GenerateImageRequest(BaseModel):
    """文生图请求模型"""

    prompt: Optional[str] = Field(None, description="图像生成的文本描述")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "prompt": "a red cube on a wooden table"
            }
        }
    )


class EditImageUrlRequest(BaseModel):
    """基于远程图像 URL 的编辑请求模型"""

    prompt: Optional[str] = Field(None, description="图像修改的文本描述")
    image_url: Optional[str] = Field(None, description="源图像 URL，支持 Google Drive 分享链接")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "prompt": "turn this photo into a watercolor painting",
                "image_url": "https://drive.google.com/file/d/1AbCdEf/view?usp=sharing"
            }
        }
    )
