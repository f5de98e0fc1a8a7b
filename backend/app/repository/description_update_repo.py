from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.db.model.caption import (
    BulkUpdateRequestDescriptionUpdate,
    ProductDescriptionUpdate,
)


"""
写一条描述变更审计行（bulk 任务时同一事务写关联行）。
    - 只追加，不修改已有行
    - 失败回滚后继续抛，由 bulk 任务 / webhook 记录错误
"""
def create_description_update(
    db: Session,
    *,
    shop_id: str,
    product_id: str,
    old_description: Optional[str],
    new_description: str,
    bulk_update_request_id: Optional[str] = None,
) -> ProductDescriptionUpdate:
    try:
        row = ProductDescriptionUpdate(
            shop_id=shop_id,
            product_id=product_id,
            old_description=old_description,
            new_description=new_description,
        )
        db.add(row)
        db.flush()  # 拿到 id 给关联行

        if bulk_update_request_id:
            db.add(BulkUpdateRequestDescriptionUpdate(
                bulk_update_request_id=bulk_update_request_id,
                product_description_update_id=row.id,
            ))
        db.commit()
        return row
    except Exception:
        db.rollback()
        raise


# 这批商品里哪些有过 AI 描述（一次 group by 查询）
def product_ids_with_description_updates(db: Session, shop_id: str, product_ids: Iterable[str]) -> Set[str]:
    ids = list(dict.fromkeys(product_ids))
    if not ids:
        return set()

    stmt = (
        select(ProductDescriptionUpdate.product_id)
        .where(
            ProductDescriptionUpdate.shop_id == shop_id,
            ProductDescriptionUpdate.product_id.in_(ids),
        )
        .group_by(ProductDescriptionUpdate.product_id)
    )
    return set(db.scalars(stmt))


# 每个商品最近一次的 new_description
# created_at 相同（同一微秒）时按 id 排，结果固定；正常写入是顺序的，时间戳严格递增
def latest_descriptions_by_product(db: Session, shop_id: str, product_ids: Iterable[str]) -> Dict[str, str]:
    ids = list(dict.fromkeys(product_ids))
    if not ids:
        return {}

    stmt = (
        select(ProductDescriptionUpdate.product_id, ProductDescriptionUpdate.new_description)
        .where(
            ProductDescriptionUpdate.shop_id == shop_id,
            ProductDescriptionUpdate.product_id.in_(ids),
        )
        .order_by(ProductDescriptionUpdate.created_at.asc(), ProductDescriptionUpdate.id.asc())
    )
    out: Dict[str, str] = {}
    for product_id, new_description in db.execute(stmt):
        out[product_id] = new_description   # 按时间升序覆盖，最后留下最新的
    return out


def list_description_updates(db: Session, shop_id: str, product_id: str) -> List[ProductDescriptionUpdate]:
    stmt = (
        select(ProductDescriptionUpdate)
        .where(
            ProductDescriptionUpdate.shop_id == shop_id,
            ProductDescriptionUpdate.product_id == product_id,
        )
        .order_by(ProductDescriptionUpdate.created_at.desc(), ProductDescriptionUpdate.id.desc())
    )
    return list(db.scalars(stmt))


def count_for_bulk_update_request(db: Session, bulk_update_request_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(BulkUpdateRequestDescriptionUpdate)
        .where(BulkUpdateRequestDescriptionUpdate.bulk_update_request_id == bulk_update_request_id)
    )
    return db.scalar(stmt) or 0
