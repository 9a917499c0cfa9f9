"""
配置数据模型和验证

基于 Pydantic 的配置模型，提供数据验证和类型检查功能。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any


EDIT_SOURCES = ("url", "upload")


class GeminiConfig(BaseModel):
    """生成后端配置"""
    api_key: Optional[str] = Field(None, description="Gemini API 密钥")
    model: str = Field("gemini-2.5-flash-image-preview", description="图像生成模型名称")

    @field_validator('model')
    @classmethod
    def validate_model(cls, v):
        if not v:
            raise ValueError("模型名称不能为空")
        return v


class StorageConfig(BaseModel):
    """存储后端 (Cloudinary) 配置"""
    cloud_name: Optional[str] = Field(None, description="Cloudinary cloud name")
    api_key: Optional[str] = Field(None, description="Cloudinary API key")
    api_secret: Optional[str] = Field(None, description="Cloudinary API secret")
    folder: Optional[str] = Field(None, description="上传目标文件夹")


class FetchConfig(BaseModel):
    """远程图像获取配置"""
    timeout: Optional[float] = Field(None, gt=0, description="获取超时时间 (秒)，为空表示不限制")
    follow_redirects: bool = Field(True, description="是否跟随重定向")


class ServerConfig(BaseModel):
    """服务器配置"""
    host: str = Field("0.0.0.0", description="服务器主机地址")
    port: int = Field(3000, ge=1, le=65535, description="服务器端口")
    max_body_size: int = Field(10 * 1024 * 1024, ge=1024, description="JSON 请求体最大字节数")
    edit_source: str = Field("url", description="编辑接口的图像来源 (url/upload)")
    upload_dir: str = Field("/tmp", description="上传文件暂存目录")

    @field_validator('host')
    @classmethod
    def validate_host(cls, v):
        if not v:
            raise ValueError("主机地址不能为空")
        return v

    @field_validator('edit_source')
    @classmethod
    def validate_edit_source(cls, v):
        v = v.lower()
        if v not in EDIT_SOURCES:
            raise ValueError(f"edit_source 必须是 {list(EDIT_SOURCES)} 中的一个")
        return v


class LogConfig(BaseModel):
    """日志配置"""
    level: str = Field("INFO", description="日志级别")
    json_format: bool = Field(True, description="是否输出 JSON 格式日志")
    file_path: Optional[str] = Field(None, description="日志文件路径")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"日志级别必须是 {valid_levels} 中的一个")
        return v.upper()


class AppConfig(BaseModel):
    """应用程序完整配置"""
    gemini: GeminiConfig = GeminiConfig()
    storage: StorageConfig = StorageConfig()
    fetch: FetchConfig = FetchConfig()
    server: ServerConfig = ServerConfig()
    log: LogConfig = LogConfig()

    model_config = ConfigDict(extra="forbid")  # 禁止额外字段


def validate_config_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """
    验证配置字典并返回 AppConfig 实例

    Args:
        config_dict: 配置字典

    Returns:
        AppConfig: 验证后的配置对象

    Raises:
        ValueError: 配置验证失败
    """
    try:
        return AppConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"配置验证失败: {str(e)}")


def get_default_config() -> Dict[str, Any]:
    """
    获取默认配置

    Returns:
        Dict[str, Any]: 默认配置字典
    """
    return {
        "gemini": {
            "api_key": None,
            "model": "gemini-2.5-flash-image-preview"
        },
        "storage": {
            "cloud_name": None,
            "api_key": None,
            "api_secret": None,
            "folder": None
        },
        "fetch": {
            "timeout": None,
            "follow_redirects": True
        },
        "server": {
            "host": "0.0.0.0",
            "port": 3000,
            "max_body_size": 10 * 1024 * 1024,
            "edit_source": "url",
            "upload_dir": "/tmp"
        },
        "log": {
            "level": "INFO",
            "json_format": True,
            "file_path": None
        }
    }
