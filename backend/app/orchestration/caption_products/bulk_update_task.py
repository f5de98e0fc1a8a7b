from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from celery import shared_task
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.model.caption import BulkUpdateRequest
from app.db.session import session_scope
from app.integrations.shopify.product_types import Product
from app.integrations.shopify.shopify_client import ShopifyClient, shopify_client_for_shop
from app.integrations.visionati.visionati_client import visionati_client_for_shop
from app.orchestration.caption_products.page_iterator import for_each_product_page
from app.orchestration.caption_products.shop_lock import shop_lock
from app.orchestration.caption_products.write_back import (
    GetImageDescriptions,
    approve_descriptions,
    caption_and_write_page,
)
from app.repository.bulk_update_repo import (
    BulkUpdateRequestNotFoundError,
    create_bulk_update_request,
    finish_bulk_update_request,
    get_bulk_update_request,
    request_product_ids,
)


logger = logging.getLogger(__name__)


class BulkOperationKind(str, Enum):
    ALL = "all"                       # 整店扫描
    PRODUCT_LIST = "product_list"     # 选中的商品重新生成
    APPROVE_LIST = "approve_list"     # 选中的商品采用已生成的 AI 描述（不重新生成）


CAPTION_KINDS = frozenset({BulkOperationKind.ALL, BulkOperationKind.PRODUCT_LIST})


"""
  调试开关：True 时 bulk 任务不走 Celery，在当前进程执行（API 层交给 BackgroundTasks，不阻塞请求）。
"""
def _inline_tasks_enabled() -> bool:
    return bool(getattr(settings, "SYNC_TASKS_INLINE", False))


@dataclass
class BulkRunContext:
    db: Session
    job: BulkUpdateRequest
    shopify: ShopifyClient
    get_image_descriptions: Optional[GetImageDescriptions] = None


# ========================== 策略：每种 kind 一个函数，签名一致 ==========================

def _caption_all_products(ctx: BulkRunContext) -> None:
    def _on_page(page: List[Product]) -> None:
        caption_and_write_page(
            ctx.db,
            ctx.shopify,
            ctx.get_image_descriptions,
            shop_id=ctx.job.shop_id,
            products=page,
            bulk_update_request_id=ctx.job.id,
        )

    for_each_product_page(ctx.shopify.get_products, _on_page, page_size=settings.BULK_PAGE_SIZE)


def _fetch_products(shopify: ShopifyClient, product_ids: Sequence[str]) -> List[Product]:
    products: List[Product] = []
    for product_id in product_ids:
        product = shopify.get_product(product_id)
        if product is None:
            logger.warning("caption.bulk.product_missing shop=%s product=%s", shopify.shop, product_id)
            continue
        products.append(product)
    return products


def _caption_product_list(ctx: BulkRunContext) -> None:
    products = _fetch_products(ctx.shopify, request_product_ids(ctx.job))
    size = settings.BULK_PAGE_SIZE
    # 和整店扫描一样按 25 个一批提交 Visionati
    for i in range(0, len(products), size):
        caption_and_write_page(
            ctx.db,
            ctx.shopify,
            ctx.get_image_descriptions,
            shop_id=ctx.job.shop_id,
            products=products[i:i + size],
            bulk_update_request_id=ctx.job.id,
        )


def _approve_product_list(ctx: BulkRunContext) -> None:
    products = _fetch_products(ctx.shopify, request_product_ids(ctx.job))
    approve_descriptions(ctx.db, ctx.shopify, shop_id=ctx.job.shop_id, products=products)


BULK_STRATEGIES: Dict[BulkOperationKind, Callable[[BulkRunContext], None]] = {
    BulkOperationKind.ALL: _caption_all_products,
    BulkOperationKind.PRODUCT_LIST: _caption_product_list,
    BulkOperationKind.APPROVE_LIST: _approve_product_list,
}



# ========================== 任务触发流程 ==========================
"""
发起 bulk 任务（HTTP 层调用）
    1) 同步校验配置：shop session、Visionati api key（配置错误直接抛给调用方，不建任务）
    2) 写入任务行（open）
    3) 投递 Celery 任务，不等待结果，调用方轮询进度
       inline 模式：给了 defer（如 BackgroundTasks.add_task）就交给它延后执行；没给才同步跑完（脚本 / 测试）
"""
def start_bulk_update(
    db: Session,
    *,
    shop_id: str,
    kind: BulkOperationKind | str,
    product_ids: Optional[Sequence[str]] = None,
    inline: Optional[bool] = None,
    defer: Optional[Callable[..., Any]] = None,
) -> BulkUpdateRequest:
    kind = BulkOperationKind(kind)
    ids = list(dict.fromkeys(product_ids or []))
    if kind is not BulkOperationKind.ALL and not ids:
        raise ValueError(f"bulk operation {kind.value} requires product_ids")

    shopify_client_for_shop(db, shop_id)
    if kind in CAPTION_KINDS:
        visionati_client_for_shop(db, shop_id)

    job = create_bulk_update_request(db, shop_id=shop_id, kind=kind.value, product_ids=ids or None)
    logger.info("caption.bulk.created request_id=%s shop=%s kind=%s products=%s", job.id, shop_id, kind.value, len(ids))

    inline = _inline_tasks_enabled() if inline is None else inline
    if inline and defer is not None:
        defer(run_bulk_update_inline, job.id)
    elif inline:
        run_bulk_update_inline(job.id)
        db.refresh(job)
    else:
        run_bulk_update.apply_async(args=[job.id], task_id=f"caption-bulk:{job.id}")
    return job



"""
    Celery 入口：跑完后一定关闭任务行。
"""
@shared_task(name="caption_products.run_bulk_update", bind=True)
def run_bulk_update(self, request_id: str) -> str:
    job = _run_bulk_update_logic(request_id)
    return job.id


"""
    调试入口：在当前进程同步执行；测试可以注入 shopify / get_image_descriptions。
"""
def run_bulk_update_inline(
    request_id: str,
    *,
    shopify: Optional[ShopifyClient] = None,
    get_image_descriptions: Optional[GetImageDescriptions] = None,
) -> BulkUpdateRequest:
    return _run_bulk_update_logic(request_id, shopify=shopify, get_image_descriptions=get_image_descriptions)


"""
bulk 任务的收尾边界：
    - 策略正常返回 -> error=False
    - 策略任何异常 -> 记日志，error=True，不再往上抛（任务行就是错误的持久记录）
    - 关闭任务行本身失败 -> 往上抛，没有更外层可以记录了
"""
def _run_bulk_update_logic(
    request_id: str,
    *,
    shopify: Optional[ShopifyClient] = None,
    get_image_descriptions: Optional[GetImageDescriptions] = None,
) -> BulkUpdateRequest:

    with session_scope() as db:
        job = get_bulk_update_request(db, request_id)
        if job is None:
            raise BulkUpdateRequestNotFoundError(request_id)

        kind = BulkOperationKind(job.kind)
        shop_id = job.shop_id
        logger.info("caption.bulk.start request_id=%s shop=%s kind=%s", request_id, shop_id, kind.value)

        error = False
        try:
            with shop_lock(shop_id):
                ctx = BulkRunContext(
                    db=db,
                    job=job,
                    shopify=shopify or shopify_client_for_shop(db, shop_id),
                )
                if kind in CAPTION_KINDS:
                    ctx.get_image_descriptions = get_image_descriptions or visionati_client_for_shop(db, shop_id)
                BULK_STRATEGIES[kind](ctx)
        except Exception:
            error = True
            db.rollback()
            logger.exception("caption.bulk.failed request_id=%s shop=%s kind=%s", request_id, shop_id, kind.value)

        finished = finish_bulk_update_request(db, request_id, error=error)
        logger.info("caption.bulk.finished request_id=%s shop=%s error=%s", finished.id, finished.shop_id, finished.error)
        return finished
