"""
products/create webhook -> 单商品描述流水线（带幂等）

    1) payload 没有 admin_graphql_api_id：忽略
    2) 该投递 id 已处理过：直接返回，无副作用（拿到 shop 锁后、写回前各再查一次）
    3) 构造 Shopify / Visionati client（配置错误在任何远程调用前抛）
    4) 拉商品；没图 -> 记录投递后返回
    5) 生成描述 -> 写回 -> 审计行
    6) 最后才写投递记录：中途崩溃时重投会重新处理，宁可重复也不丢
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from celery import shared_task
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import session_scope
from app.integrations.shopify.shopify_client import ShopifyClient, shopify_client_for_shop
from app.integrations.visionati.visionati_client import visionati_client_for_shop
from app.orchestration.caption_products.shop_lock import shop_lock
from app.orchestration.caption_products.write_back import (
    GetImageDescriptions,
    caption_page,
    write_back_descriptions,
)
from app.repository.webhook_request_repo import record_webhook_request, webhook_request_exists


logger = logging.getLogger(__name__)

PRODUCTS_CREATE_TOPIC = "products/create"


class ProductCreateOutcome(str, Enum):
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    NO_IMAGE = "no_image"
    CAPTIONED = "captioned"


def _inline_tasks_enabled() -> bool:
    return bool(getattr(settings, "SYNC_TASKS_INLINE", False))


def handle_product_create(
    db: Session,
    *,
    webhook_id: str,
    shop: str,
    payload: Dict[str, Any],
    shopify: Optional[ShopifyClient] = None,
    get_image_descriptions: Optional[GetImageDescriptions] = None,
) -> ProductCreateOutcome:

    product_gid = (payload or {}).get("admin_graphql_api_id")
    if not product_gid:
        logger.info("webhook.product_create.ignored webhook_id=%s shop=%s reason=no_product_id", webhook_id, shop)
        return ProductCreateOutcome.IGNORED

    if webhook_request_exists(db, webhook_id):
        logger.info("webhook.product_create.duplicate webhook_id=%s shop=%s", webhook_id, shop)
        return ProductCreateOutcome.DUPLICATE

    shopify = shopify or shopify_client_for_shop(db, shop)
    get_image_descriptions = get_image_descriptions or visionati_client_for_shop(db, shop)

    # webhook 只短暂等锁（bulk 扫描可能持锁很久）：等不到抛 ShopLockTimeoutError，交给重投
    with shop_lock(shop, blocking_timeout=settings.SHOP_LOCK_WEBHOOK_BLOCKING_TIMEOUT_SEC):
        # 拿到锁后再查一次：同一投递的上一次处理可能刚在锁里写完
        if webhook_request_exists(db, webhook_id):
            logger.info("webhook.product_create.duplicate webhook_id=%s shop=%s stage=locked", webhook_id, shop)
            return ProductCreateOutcome.DUPLICATE

        product = shopify.get_product(product_gid)

        if product is None:
            # 商品在处理前已被删除：没有可做的事，记录投递避免重复拉取
            record_webhook_request(db, webhook_request_id=webhook_id, shop_id=shop, topic=PRODUCTS_CREATE_TOPIC)
            logger.info("webhook.product_create.not_found webhook_id=%s shop=%s product=%s", webhook_id, shop, product_gid)
            return ProductCreateOutcome.NOT_FOUND

        if not product.featured_image_url:
            record_webhook_request(db, webhook_request_id=webhook_id, shop_id=shop, topic=PRODUCTS_CREATE_TOPIC)
            logger.info("webhook.product_create.no_image webhook_id=%s shop=%s product=%s", webhook_id, shop, product.id)
            return ProductCreateOutcome.NO_IMAGE

        descriptions = caption_page([product], get_image_descriptions)

        # 没配 Redis 时锁不生效：Visionati 轮询期间同一投递可能已被另一次处理写完，写回前再查一次
        if webhook_request_exists(db, webhook_id):
            logger.info("webhook.product_create.duplicate webhook_id=%s shop=%s stage=captioned", webhook_id, shop)
            return ProductCreateOutcome.DUPLICATE

        rows = write_back_descriptions(
            db,
            shopify,
            shop_id=shop,
            products=[product],
            descriptions=descriptions,
        )

        record_webhook_request(
            db,
            webhook_request_id=webhook_id,
            shop_id=shop,
            topic=PRODUCTS_CREATE_TOPIC,
            product_description_update_id=rows[0].id if rows else None,
        )

    logger.info("webhook.product_create.done webhook_id=%s shop=%s product=%s updates=%s",
        webhook_id, shop, product.id, len(rows))
    return ProductCreateOutcome.CAPTIONED



"""
    Celery 入口：失败记日志后继续抛，交给 Celery / Shopify 重投。
"""
@shared_task(name="caption_products.handle_product_create", bind=True)
def handle_product_create_task(self, webhook_id: str, shop: str, payload: Dict[str, Any]) -> str:
    return handle_product_create_inline(webhook_id, shop, payload).value


def handle_product_create_inline(webhook_id: str, shop: str, payload: Dict[str, Any]) -> ProductCreateOutcome:
    with session_scope() as db:
        try:
            return handle_product_create(db, webhook_id=webhook_id, shop=shop, payload=payload)
        except Exception:
            logger.exception("webhook.product_create.failed webhook_id=%s shop=%s", webhook_id, shop)
            raise


def dispatch_product_create(
    webhook_id: str, shop: str, payload: Dict[str, Any], *, inline: Optional[bool] = None
) -> Optional[ProductCreateOutcome]:
    """webhook 路由调用：inline 模式同步执行（异常直接抛给路由），否则投递 Celery"""
    inline = _inline_tasks_enabled() if inline is None else inline
    if inline:
        return handle_product_create_inline(webhook_id, shop, payload)
    handle_product_create_task.apply_async(args=[webhook_id, shop, payload], task_id=f"product-create:{webhook_id}")
    return None
