"""
图像代理服务异常类定义
"""


class ImageServiceError(Exception):
    """图像代理服务基础异常类"""
    pass


class ValidationError(ImageServiceError):
    """请求参数验证异常"""
    def __init__(self, message: str, parameter: str = None):
        super().__init__(message)
        self.parameter = parameter


class FetchError(ImageServiceError):
    """远程图像获取异常"""
    def __init__(self, message: str = "Failed to fetch image from URL", url: str = None, status_code: int = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class UnsupportedMediaError(ImageServiceError):
    """远程资源不是图像"""
    def __init__(self, mime_type: str = None):
        super().__init__(f"Unsupported MIME type: {mime_type}")
        self.mime_type = mime_type


class NoImageReturnedError(ImageServiceError):
    """生成后端未返回图像"""
    def __init__(self, message: str = "No image returned"):
        super().__init__(message)


class GenerationError(ImageServiceError):
    """生成后端调用异常"""
    def __init__(self, message: str, model: str = None):
        super().__init__(message)
        self.model = model


class UploadError(ImageServiceError):
    """存储后端上传异常"""
    def __init__(self, message: str, public_id: str = None):
        super().__init__(message)
        self.public_id = public_id
