# 商品列表（带 AI 描述状态）-> 前端审核页面调用

from __future__ import annotations
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import CaptionConfigError
from app.db.session import get_db
from app.integrations.shopify.graphql_queries import title_search_query
from app.integrations.shopify.shopify_client import shopify_client_for_shop
from app.services.product_annotation_service import (
    DescriptionState,
    ProductFilter,
    list_annotated_products,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


class ProductOut(BaseModel):
    id: str
    title: str
    description: str
    featured_image_url: Optional[str] = None
    online_store_url: Optional[str] = None
    online_store_preview_url: Optional[str] = None
    ai_description: Optional[str] = None
    description_state: DescriptionState


class PageInfoOut(BaseModel):
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None
    has_next_page: bool = False
    has_previous_page: bool = False


class ProductsPageOut(BaseModel):
    items: List[ProductOut]
    page_info: PageInfoOut


@router.get("", response_model=ProductsPageOut)
def list_products(
    shop: str = Query(..., min_length=1),
    product_filter: ProductFilter = Query(ProductFilter.ALL_PRODUCTS, alias="filter"),
    q: Optional[str] = Query(None, description="按标题搜索"),
    after: Optional[str] = None,
    before: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        shopify = shopify_client_for_shop(db, shop)
    except CaptionConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    page = list_annotated_products(
        db,
        shopify.get_products,
        shop_id=shop,
        product_filter=product_filter,
        query=title_search_query(q or "") or None,
        after=after,
        before=before,
        page_size=settings.LISTING_PAGE_SIZE,
        scan_page_size=settings.BULK_PAGE_SIZE,
    )

    items = [
        ProductOut(
            id=a.product.id,
            title=a.product.title,
            description=a.product.description,
            featured_image_url=a.product.featured_image_url,
            online_store_url=a.product.online_store_url,
            online_store_preview_url=a.product.online_store_preview_url,
            ai_description=a.ai_description,
            description_state=a.state,
        )
        for a in page.products
    ]
    info = page.page_info
    return ProductsPageOut(
        items=items,
        page_info=PageInfoOut(
            start_cursor=info.start_cursor,
            end_cursor=info.end_cursor,
            has_next_page=info.has_next_page,
            has_previous_page=info.has_previous_page,
        ),
    )
