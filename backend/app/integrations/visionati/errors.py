"""
   Visionati 集成层专用异常类型。
   提交 / 轮询 / 载荷 / 配置错误分开，bulk 任务和 webhook 统一按 VisionatiError 处理。
"""

from app.core.exceptions import CaptionConfigError


class VisionatiError(Exception):
    """Base for all Visionati errors."""

class VisionatiConfigError(VisionatiError, CaptionConfigError):
    """No API key, or an unknown role/backend stored in shop settings."""

class VisionatiRequestError(VisionatiError):
    """Network failure or non-2xx status on submit or poll."""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

class VisionatiBatchRejectedError(VisionatiError):
    """Submit response without success / response_uri, or carrying an error."""

class VisionatiPayloadError(VisionatiError):
    """Poll body reported an error or is not the expected JSON shape."""
