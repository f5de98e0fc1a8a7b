"""
商品目录游标分页：
    - for_each_product_page：一页一页往后翻，非空页才回调；hasNextPage=false 结束
    - filter_all_products：在上面基础上，每页跑一次 predicate，结果按页顺序拼接
拉取失败直接抛，这一层不做重试（ShopifyClient 自己有 HTTP 级重试）。
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

from app.core.config import settings
from app.integrations.shopify.product_types import Product, ProductConnection


logger = logging.getLogger(__name__)


class ProductPageFetcher(Protocol):
    def __call__(
        self,
        *,
        query: Optional[str] = None,
        first: Optional[int] = None,
        after: Optional[str] = None,
        last: Optional[int] = None,
        before: Optional[str] = None,
    ) -> ProductConnection: ...


PageCallback = Callable[[List[Product]], None]
PagePredicate = Callable[[List[Product]], List[Product]]


def for_each_product_page(
    get_products: ProductPageFetcher,
    callback: PageCallback,
    *,
    query: Optional[str] = None,
    page_size: Optional[int] = None,
) -> int:
    """返回拉取的页数（含空页）"""
    page_size = page_size or settings.BULK_PAGE_SIZE
    cursor: Optional[str] = None
    pages = 0

    while True:
        conn = get_products(query=query, first=page_size, after=cursor)
        pages += 1

        if conn.nodes:
            callback(list(conn.nodes))
        else:
            logger.info("catalog.page.empty page=%s cursor=%s", pages, cursor)

        if not conn.page_info.has_next_page:
            break
        cursor = conn.page_info.end_cursor

    logger.info("catalog.pages.done pages=%s query=%s", pages, query)
    return pages


def filter_all_products(
    get_products: ProductPageFetcher,
    predicate: PagePredicate,
    *,
    query: Optional[str] = None,
    page_size: Optional[int] = None,
) -> List[Product]:
    matched: List[Product] = []

    def _collect(page: List[Product]) -> None:
        matched.extend(predicate(page))

    for_each_product_page(get_products, _collect, query=query, page_size=page_size)
    return matched
