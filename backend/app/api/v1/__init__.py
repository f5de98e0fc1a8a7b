from fastapi import APIRouter

from .routes_health import router as health_router
from .caption_bulk import router as caption_bulk_router
from .products import router as products_router
from .shop_settings import router as shop_settings_router
from .webhooks_shopify import router as webhooks_router


# shop 认证（OAuth / session token）由外层网关处理，这里不挂鉴权依赖
api_v1 = APIRouter()
api_v1.include_router(health_router)
api_v1.include_router(caption_bulk_router)
api_v1.include_router(products_router)
api_v1.include_router(shop_settings_router)
api_v1.include_router(webhooks_router)
