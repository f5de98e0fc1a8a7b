"""
一页商品：取图片 URL -> Visionati 一次批量描述 -> 条数校验 -> 逐个写回 Shopify + 审计行

写回是顺序的：第 K 个失败就停，前 K-1 个已经写回且有审计行。
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from app.db.model.caption import ProductDescriptionUpdate
from app.integrations.shopify.product_types import Product
from app.orchestration.caption_products.errors import DescriptionCountMismatchError
from app.repository.description_update_repo import (
    create_description_update,
    latest_descriptions_by_product,
)


logger = logging.getLogger(__name__)


GetImageDescriptions = Callable[[List[str]], Dict[str, str]]


class DescriptionWriter(Protocol):
    def update_product_description(self, product_id: str, description_html: str) -> Product: ...


def collect_image_urls(products: Sequence[Product]) -> List[str]:
    # 去重：两个商品共用一张图时只提交一次，否则条数校验必然对不上
    return list(dict.fromkeys(p.featured_image_url for p in products if p.featured_image_url))


def caption_page(products: Sequence[Product], get_image_descriptions: GetImageDescriptions) -> Dict[str, str]:
    """没有图片的页不调用 Visionati，返回空 dict"""
    image_urls = collect_image_urls(products)
    if not image_urls:
        logger.info("caption.page.no_images products=%s", len(products))
        return {}

    descriptions = get_image_descriptions(image_urls)
    if len(descriptions) != len(image_urls):
        logger.error("caption.page.count_mismatch submitted=%s returned=%s", len(image_urls), len(descriptions))
        raise DescriptionCountMismatchError(len(image_urls), len(descriptions))
    return descriptions


def write_back_descriptions(
    db: Session,
    shopify: DescriptionWriter,
    *,
    shop_id: str,
    products: Sequence[Product],
    descriptions: Dict[str, str],
    bulk_update_request_id: Optional[str] = None,
) -> List[ProductDescriptionUpdate]:
    created: List[ProductDescriptionUpdate] = []

    for product in products:
        new_description = descriptions.get(product.featured_image_url) if product.featured_image_url else None
        if not new_description:
            # 没图 / 没拿到描述：保持原样，不写空
            logger.info("caption.write_back.skip shop=%s product=%s", shop_id, product.id)
            continue

        shopify.update_product_description(product.id, new_description)
        row = create_description_update(
            db,
            shop_id=shop_id,
            product_id=product.id,
            old_description=product.description,
            new_description=new_description,
            bulk_update_request_id=bulk_update_request_id,
        )
        created.append(row)
        logger.info("caption.write_back.ok shop=%s product=%s update_id=%s", shop_id, product.id, row.id)

    return created


def caption_and_write_page(
    db: Session,
    shopify: DescriptionWriter,
    get_image_descriptions: GetImageDescriptions,
    *,
    shop_id: str,
    products: Sequence[Product],
    bulk_update_request_id: Optional[str] = None,
) -> List[ProductDescriptionUpdate]:
    descriptions = caption_page(products, get_image_descriptions)
    if not descriptions:
        return []
    return write_back_descriptions(
        db,
        shopify,
        shop_id=shop_id,
        products=products,
        descriptions=descriptions,
        bulk_update_request_id=bulk_update_request_id,
    )


"""
审批：把已经生成过的最新 AI 描述写到商品上，不重新跑 Visionati。
    - 审计行在生成时已写过，这里不再追加
    - 没有 AI 描述的商品跳过
"""
def approve_descriptions(
    db: Session,
    shopify: DescriptionWriter,
    *,
    shop_id: str,
    products: Sequence[Product],
) -> int:
    latest = latest_descriptions_by_product(db, shop_id, [p.id for p in products])
    approved = 0
    for product in products:
        ai_description = latest.get(product.id)
        if not ai_description:
            logger.info("caption.approve.skip shop=%s product=%s", shop_id, product.id)
            continue
        shopify.update_product_description(product.id, ai_description)
        approved += 1
    logger.info("caption.approve.done shop=%s approved=%s selected=%s", shop_id, approved, len(products))
    return approved
