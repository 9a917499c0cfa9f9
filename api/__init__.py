"""
API 模块

FastAPI 应用程序和路由的入口点。
"""

from typing import Optional

from fastapi import FastAPI

from .app import image_api
from .routes import router, url_edit_router, upload_edit_router


def build_app(edit_source: Optional[str] = None) -> FastAPI:
    """
    创建应用并注册路由

    Args:
        edit_source: "url" 或 "upload"，默认读取配置
    """
    application = image_api.create_app(edit_source)

    application.include_router(router)
    if application.state.edit_source == "upload":
        application.include_router(upload_edit_router)
    else:
        application.include_router(url_edit_router)

    return application


# 按当前配置创建的默认应用实例
app = build_app()

__all__ = ["app", "build_app", "image_api"]
