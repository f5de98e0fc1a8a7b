from .errors import (
    VisionatiError,
    VisionatiConfigError,
    VisionatiRequestError,
    VisionatiBatchRejectedError,
    VisionatiPayloadError,
)
from .prompts import (
    ROLES,
    BACKENDS,
    DESCRIPTION_BACKENDS,
    TAGGING_BACKENDS,
    PROMPT_BOILERPLATE,
    build_prompt,
)
from .visionati_client import (
    VisionatiClient,
    CaptionSettings,
    visionati_client_for_shop,
)

__all__ = [
    "VisionatiError", "VisionatiConfigError", "VisionatiRequestError",
    "VisionatiBatchRejectedError", "VisionatiPayloadError",
    "ROLES", "BACKENDS", "DESCRIPTION_BACKENDS", "TAGGING_BACKENDS", "PROMPT_BOILERPLATE", "build_prompt",
    "VisionatiClient", "CaptionSettings", "visionati_client_for_shop",
]
