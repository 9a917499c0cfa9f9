"""
API 路由定义

生成路由对两种部署形态通用；/edit-image 有两个实现：
url_edit_router 接收 JSON 中的远程图像地址，upload_edit_router 接收 multipart 上传文件。
应用只注册其中一个。
"""

from datetime import datetime
from typing import Optional, Tuple

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile

from models.images import GenerationRequest
from models.requests import GenerateImageRequest, EditImageUrlRequest
from models.responses import ImageResultResponse, HealthResponse, InfoResponse
from services.exceptions import ValidationError
from services.image_source import normalize_drive_url, staged_upload, read_staged_image
from services.logging import get_logger
from .app import image_api, SERVICE_NAME, SERVICE_VERSION

logger = get_logger(__name__)

GENERATE_PREFIX = "gen_"
EDIT_PREFIX = "edit_"

# 通用路由
router = APIRouter()

# /edit-image 的两种实现
url_edit_router = APIRouter()
upload_edit_router = APIRouter()


def get_orchestrator():
    """依赖注入：获取生成编排器"""
    return image_api.get_orchestrator()


def get_publisher():
    """依赖注入：获取存储发布器"""
    return image_api.get_publisher()


def get_resolver():
    """依赖注入：获取图像来源解析器"""
    return image_api.get_resolver()


def get_upload_dir():
    """依赖注入：获取上传暂存目录"""
    return image_api.get_upload_dir()


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


# 参数校验依赖排在服务依赖之前，校验失败时不会触碰任何后端
def require_prompt(payload: Optional[GenerateImageRequest] = Body(None)) -> str:
    """校验文生图请求"""
    prompt = payload.prompt if payload else None
    logger.info("Prompt received", prompt=prompt)
    if not _present(prompt):
        raise ValidationError("Missing prompt", parameter="prompt")
    return prompt


def require_prompt_and_url(payload: Optional[EditImageUrlRequest] = Body(None)) -> Tuple[str, str]:
    """校验基于 URL 的编辑请求"""
    prompt = payload.prompt if payload else None
    image_url = payload.image_url if payload else None
    logger.info("Edit request received", prompt=prompt, image_url=image_url)
    if not _present(prompt) or not _present(image_url):
        raise ValidationError("Missing prompt or image_url")
    return prompt, image_url.strip()


def require_prompt_and_file(
    prompt: Optional[str] = Form(None, description="图像修改的文本描述"),
    file: Optional[UploadFile] = File(None, description="源图像文件")
) -> Tuple[str, UploadFile]:
    """校验基于上传文件的编辑请求"""
    logger.info(
        "Edit request received",
        prompt=prompt,
        filename=file.filename if file else None
    )
    if not _present(prompt) or file is None:
        if file is not None:
            file.file.close()
        raise ValidationError("Missing prompt or file")
    return prompt, file


@router.post("/generate-image", response_model=ImageResultResponse)
async def generate_image(
    prompt: str = Depends(require_prompt),
    orchestrator=Depends(get_orchestrator),
    publisher=Depends(get_publisher)
):
    """
    文生图端点

    根据文本描述生成图像并发布到存储后端
    """
    request = GenerationRequest(prompt=prompt)

    image = await orchestrator.generate(request.prompt)
    result = await publisher.publish(image.data, GENERATE_PREFIX)

    return ImageResultResponse(message="Image generated", url=result.url)


@url_edit_router.post("/edit-image", response_model=ImageResultResponse)
async def edit_image_from_url(
    fields: Tuple[str, str] = Depends(require_prompt_and_url),
    resolver=Depends(get_resolver),
    orchestrator=Depends(get_orchestrator),
    publisher=Depends(get_publisher)
):
    """
    图像编辑端点（远程 URL）

    Google Drive 分享链接会先被改写为直接下载链接
    """
    prompt, image_url = fields

    normalized_url = normalize_drive_url(image_url)
    logger.info("Normalized image_url", image_url=normalized_url)

    source = await resolver.fetch_image(normalized_url)
    request = GenerationRequest(prompt=prompt, source_image=source)

    image = await orchestrator.edit(request.prompt, request.source_image)
    result = await publisher.publish(image.data, EDIT_PREFIX)

    return ImageResultResponse(message="Image edited", url=result.url)


@upload_edit_router.post("/edit-image", response_model=ImageResultResponse)
async def edit_image_from_upload(
    fields: Tuple[str, UploadFile] = Depends(require_prompt_and_file),
    upload_dir: str = Depends(get_upload_dir),
    orchestrator=Depends(get_orchestrator),
    publisher=Depends(get_publisher)
):
    """
    图像编辑端点（上传文件）

    暂存文件在请求结束时删除，包括出错的情况
    """
    prompt, file = fields

    async with staged_upload(file, upload_dir) as path:
        source = await read_staged_image(path, file.content_type)
        request = GenerationRequest(prompt=prompt, source_image=source)

        image = await orchestrator.edit(request.prompt, request.source_image)

    result = await publisher.publish(image.data, EDIT_PREFIX)

    return ImageResultResponse(message="Image edited", url=result.url)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """健康检查端点"""
    configured = image_api.orchestrator is not None and image_api.publisher is not None

    return HealthResponse(
        status="healthy" if configured else "degraded",
        edit_source=request.app.state.edit_source,
        uptime=image_api.get_uptime(),
        timestamp=datetime.now()
    )


@router.get("/", response_model=InfoResponse)
async def root(request: Request):
    """根路径，返回服务基本信息"""
    return InfoResponse(
        service_name=SERVICE_NAME,
        version=SERVICE_VERSION,
        model=image_api.config_manager.get_config().gemini.model,
        edit_source=request.app.state.edit_source,
        api_endpoints=["/generate-image", "/edit-image", "/health"]
    )
