from __future__ import annotations

import json
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.db.model.caption import BulkUpdateRequest
from app.utils.clock import now_utc


class BulkUpdateRequestNotFoundError(LookupError):
    pass


class BulkUpdateRequestAlreadyClosedError(RuntimeError):
    """end_time 已写过，不允许再次关闭"""


def create_bulk_update_request(
    db: Session,
    *,
    shop_id: str,
    kind: str,
    product_ids: Optional[Sequence[str]] = None,
) -> BulkUpdateRequest:
    try:
        row = BulkUpdateRequest(
            shop_id=shop_id,
            kind=kind,
            product_ids=json.dumps(list(product_ids)) if product_ids else None,
            start_time=now_utc(),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except Exception:
        db.rollback()
        raise


def request_product_ids(row: BulkUpdateRequest) -> List[str]:
    return list(json.loads(row.product_ids)) if row.product_ids else []


def get_bulk_update_request(
    db: Session, request_id: str, *, shop_id: Optional[str] = None
) -> Optional[BulkUpdateRequest]:
    stmt = select(BulkUpdateRequest).where(BulkUpdateRequest.id == request_id)
    if shop_id is not None:
        stmt = stmt.where(BulkUpdateRequest.shop_id == shop_id)
    return db.scalar(stmt)


def latest_bulk_update_request(db: Session, shop_id: str) -> Optional[BulkUpdateRequest]:
    stmt = (
        select(BulkUpdateRequest)
        .where(BulkUpdateRequest.shop_id == shop_id)
        .order_by(BulkUpdateRequest.start_time.desc(), BulkUpdateRequest.id.desc())
        .limit(1)
    )
    return db.scalar(stmt)


"""
关闭 bulk 任务：open -> closed 只发生一次。
    - 用 WHERE end_time IS NULL 的条件更新，避免两次关闭互相覆盖
    - 已关闭 / 不存在都抛异常
"""
def finish_bulk_update_request(db: Session, request_id: str, *, error: bool) -> BulkUpdateRequest:
    try:
        result = db.execute(
            update(BulkUpdateRequest)
            .where(BulkUpdateRequest.id == request_id, BulkUpdateRequest.end_time.is_(None))
            .values(end_time=now_utc(), error=error)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    row = db.get(BulkUpdateRequest, request_id, populate_existing=True)
    if row is None:
        raise BulkUpdateRequestNotFoundError(request_id)
    if result.rowcount == 0:
        raise BulkUpdateRequestAlreadyClosedError(f"bulk update request {request_id} already closed")
    return row
