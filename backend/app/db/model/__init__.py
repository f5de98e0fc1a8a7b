# 聚合导入所有模型，供 Alembic 发现

from .shop import (
    ShopSession,
    ShopVisionatiSettings,
    ShopAutoImageDescription,
)

from .caption import (
    ProductDescriptionUpdate,
    BulkUpdateRequest,
    BulkUpdateRequestDescriptionUpdate,
    WebhookRequest,
    WebhookRequestDescriptionUpdate,
)

__all__ = [
    # shop
    "ShopSession", "ShopVisionatiSettings", "ShopAutoImageDescription",
    # caption
    "ProductDescriptionUpdate", "BulkUpdateRequest", "BulkUpdateRequestDescriptionUpdate",
    "WebhookRequest", "WebhookRequestDescriptionUpdate",
]
