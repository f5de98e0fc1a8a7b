"""
商品描述状态分类（只读，基于审计表）：
    - none        没有描述，也没有 AI 描述
    - no_ai       有描述，没有 AI 描述
    - pending_ai  有 AI 描述，但和当前描述不一致（未采用 / 商家改过）
    - ai          当前描述就是最近一次 AI 描述

"一致" 用 stripped equality：去掉 HTML 标签和所有非字母数字字符后比较，
因为 AI 描述是 HTML，而 Shopify 的 description 是纯文本。
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.integrations.shopify.product_types import PageInfo, Product, ProductConnection
from app.orchestration.caption_products.page_iterator import ProductPageFetcher, filter_all_products
from app.repository.description_update_repo import (
    latest_descriptions_by_product,
    product_ids_with_description_updates,
)


_TAG_RE = re.compile(r"<[^>]+>")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def stripped_text(value: Optional[str]) -> str:
    return _NON_ALNUM_RE.sub("", _TAG_RE.sub("", value or ""))


def stripped_equal(a: Optional[str], b: Optional[str]) -> bool:
    return stripped_text(a) == stripped_text(b)


class DescriptionState(str, Enum):
    NONE = "none"
    NO_AI = "no_ai"
    PENDING_AI = "pending_ai"
    AI = "ai"


class ProductFilter(str, Enum):
    ALL_PRODUCTS = "all_products"
    NO_AI_DESCRIPTIONS = "products_no_ai_descriptions"
    PENDING_AI_DESCRIPTIONS = "products_pending_ai_descriptions"
    AI_DESCRIPTIONS = "products_ai_descriptions"


def classify_description(description: Optional[str], ai_description: Optional[str]) -> DescriptionState:
    if not ai_description:
        return DescriptionState.NO_AI if description else DescriptionState.NONE
    if stripped_equal(description, ai_description):
        return DescriptionState.AI
    return DescriptionState.PENDING_AI


@dataclass(frozen=True)
class AnnotatedProduct:
    product: Product
    ai_description: Optional[str]
    state: DescriptionState


@dataclass(frozen=True)
class AnnotatedProductPage:
    products: List[AnnotatedProduct]
    page_info: PageInfo


# ---------- 谓词：给 filter_all_products 用，每页一次查询 ----------

def has_ai_description_predicate(
    db: Session, shop_id: str, *, has_ai_description: bool
) -> Callable[[List[Product]], List[Product]]:
    def _predicate(page: List[Product]) -> List[Product]:
        with_ai = product_ids_with_description_updates(db, shop_id, [p.id for p in page])
        return [p for p in page if (p.id in with_ai) is has_ai_description]
    return _predicate


def pending_ai_description_predicate(
    db: Session, shop_id: str, *, pending: bool
) -> Callable[[List[Product]], List[Product]]:
    """pending=True：有 AI 描述但未采用；pending=False：已采用"""
    def _predicate(page: List[Product]) -> List[Product]:
        latest = latest_descriptions_by_product(db, shop_id, [p.id for p in page])
        out: List[Product] = []
        for p in page:
            ai_description = latest.get(p.id)
            if ai_description is None:
                continue
            if stripped_equal(p.description, ai_description) is not pending:
                out.append(p)
        return out
    return _predicate


def partition_by_ai_description(
    db: Session, shop_id: str, products: Sequence[Product]
) -> tuple[List[Product], List[Product]]:
    """(有 AI 描述, 没有 AI 描述)，两部分互斥且覆盖全部输入"""
    with_ai = product_ids_with_description_updates(db, shop_id, [p.id for p in products])
    has, has_not = [], []
    for p in products:
        (has if p.id in with_ai else has_not).append(p)
    return has, has_not


def annotate_products(db: Session, shop_id: str, products: Sequence[Product]) -> List[AnnotatedProduct]:
    latest: Dict[str, str] = latest_descriptions_by_product(db, shop_id, [p.id for p in products])
    return [
        AnnotatedProduct(
            product=p,
            ai_description=latest.get(p.id),
            state=classify_description(p.description, latest.get(p.id)),
        )
        for p in products
    ]


"""
列表页：
    - all_products：只拉一页（first/after 或 last/before），逐个标注
    - 其余三个 tab：整店扫描 + 过滤，作为单页返回（无游标）
"""
def list_annotated_products(
    db: Session,
    get_products: ProductPageFetcher,
    *,
    shop_id: str,
    product_filter: ProductFilter = ProductFilter.ALL_PRODUCTS,
    query: Optional[str] = None,
    after: Optional[str] = None,
    before: Optional[str] = None,
    page_size: int = 10,
    scan_page_size: Optional[int] = None,
) -> AnnotatedProductPage:

    if product_filter is ProductFilter.ALL_PRODUCTS:
        if before:
            conn: ProductConnection = get_products(query=query, last=page_size, before=before)
        else:
            conn = get_products(query=query, first=page_size, after=after)
        return AnnotatedProductPage(products=annotate_products(db, shop_id, conn.nodes), page_info=conn.page_info)

    if product_filter is ProductFilter.NO_AI_DESCRIPTIONS:
        predicate = has_ai_description_predicate(db, shop_id, has_ai_description=False)
    elif product_filter is ProductFilter.PENDING_AI_DESCRIPTIONS:
        predicate = pending_ai_description_predicate(db, shop_id, pending=True)
    else:
        predicate = pending_ai_description_predicate(db, shop_id, pending=False)

    matched = filter_all_products(get_products, predicate, query=query, page_size=scan_page_size)
    return AnnotatedProductPage(products=annotate_products(db, shop_id, matched), page_info=PageInfo())
