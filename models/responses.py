"""
API 响应模型定义

包含图像结果、健康检查和错误的响应数据模型。
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class ImageResultResponse(BaseModel):
    """图像生成/编辑结果响应模型"""

    message: str = Field(description="结果说明")
    url: str = Field(description="存储后端返回的图像地址")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Image generated",
                "url": "https://res.cloudinary.com/demo/image/upload/v1/gen_1735689600000.png"
            }
        }
    )


class HealthResponse(BaseModel):
    """健康检查响应模型"""

    status: str = Field(description="服务状态")
    edit_source: str = Field(description="当前编辑接口的图像来源 (url/upload)")
    uptime: float = Field(description="服务运行时间（秒）")
    timestamp: datetime = Field(default_factory=datetime.now, description="检查时间")


class InfoResponse(BaseModel):
    """服务信息响应模型"""

    service_name: str = Field(description="服务名称")
    version: str = Field(description="服务版本")
    model: str = Field(description="生成模型名称")
    edit_source: str = Field(description="当前编辑接口的图像来源")
    api_endpoints: List[str] = Field(description="可用的 API 端点")


class ErrorResponse(BaseModel):
    """错误响应模型"""

    error: str = Field(description="错误信息")
    code: Optional[str] = Field(None, description="错误代码")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Missing prompt",
                "code": "VALIDATION_ERROR"
            }
        }
    )
