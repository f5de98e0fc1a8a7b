# app/api/v1/webhooks_shopify.py

from __future__ import annotations
import hmac, hashlib, base64, json, logging
from fastapi import APIRouter, Request, Header, HTTPException
from starlette.concurrency import run_in_threadpool

from app.db.session import SessionLocal
from app.core.config import settings
from app.orchestration.caption_products.product_create_task import (
    PRODUCTS_CREATE_TOPIC,
    dispatch_product_create,
)
from app.repository.shop_settings_repo import is_auto_image_descriptions_enabled


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/shopify", tags=["webhooks.shopify"])


# =============== 公共：HMAC 校验（Shopify Webhook 签名） ===============
def _compute_hmac_base64(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def _verify_hmac_or_401(provided_hmac_b64: str, raw_body: bytes) -> None:
    secret = settings.SHOPIFY_WEBHOOK_SECRET
    if not secret:
        logger.error("webhook.hmac.secret_missing")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")
    if not provided_hmac_b64:
        raise HTTPException(status_code=401, detail="Missing HMAC")

    expected = _compute_hmac_base64(secret, raw_body)
    if not hmac.compare_digest(provided_hmac_b64, expected):
        raise HTTPException(status_code=401, detail="Invalid HMAC")


def _auto_descriptions_enabled(shop: str) -> bool:
    db = SessionLocal()
    try:
        return is_auto_image_descriptions_enabled(db, shop)
    finally:
        db.close()


'''
Webhook: products/create
   Shopify 推送新建商品：{ "admin_graphql_api_id": "gid://shopify/Product/xxx", ... }
   - 先 HMAC 再看 Topic，避免用任意 Topic 绕过校验
   - 该 shop 没开自动描述：200 忽略
   - 同一投递 id 重复到达由任务里的幂等检查吸收
   - inline 模式同步处理；失败返回 500，让 Shopify 重投
'''
@router.post("/products/create")
async def products_create(
    request: Request,
    x_shopify_hmac_sha256: str = Header(default=""),
    x_shopify_topic: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
    x_shopify_webhook_id: str = Header(default=""),
):
    raw = await request.body()
    _verify_hmac_or_401(x_shopify_hmac_sha256, raw)

    topic = (x_shopify_topic or "").strip().lower()
    if topic != PRODUCTS_CREATE_TOPIC:
        return {"ok": True, "ignored": f"topic={x_shopify_topic}"}

    if not x_shopify_webhook_id or not x_shopify_shop_domain:
        raise HTTPException(status_code=400, detail="Missing webhook id or shop domain")

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    shop = x_shopify_shop_domain.strip().lower()
    if not await run_in_threadpool(_auto_descriptions_enabled, shop):
        logger.info("webhook.product_create.disabled shop=%s webhook_id=%s", shop, x_shopify_webhook_id)
        return {"ok": True, "ignored": "auto_image_descriptions_disabled"}

    try:
        outcome = await run_in_threadpool(dispatch_product_create, x_shopify_webhook_id, shop, payload)
    except Exception as e:
        # 细节已在任务里 logger.exception
        raise HTTPException(status_code=500, detail=f"processing failed: {type(e).__name__}")

    return {"ok": True, "outcome": outcome.value if outcome else "queued"}
