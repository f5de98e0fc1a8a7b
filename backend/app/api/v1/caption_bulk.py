# bulk 描述任务：发起 + 轮询进度

from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.exceptions import CaptionConfigError
from app.db.session import get_db
from app.orchestration.caption_products.bulk_update_task import BulkOperationKind, start_bulk_update
from app.services.bulk_update_progress_service import get_bulk_update_progress


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/caption/bulk", tags=["caption.bulk"])


class BulkUpdateStartIn(BaseModel):
    shop: str = Field(..., min_length=1, description="xxx.myshopify.com")
    kind: BulkOperationKind = BulkOperationKind.ALL
    product_ids: List[str] = Field(default_factory=list)


class BulkUpdateStartOut(BaseModel):
    productCatalogBulkUpdateRequestId: str


class BulkUpdateProgressOut(BaseModel):
    productCatalogBulkUpdateRequestId: str
    productDescriptionUpdateCount: int
    start_time: datetime
    end_time: Optional[datetime] = None
    error: Optional[bool] = None


'''
发起 bulk 任务：只建任务行并投递，不等待扫描完成（整店扫描可能远超 HTTP 超时）
  - 配置错误（没有 session / 没有 Visionati key）-> 400，不建任务
  - inline 调试模式也不在请求里跑：交给 BackgroundTasks，响应先返回
'''
@router.post("", response_model=BulkUpdateStartOut, status_code=status.HTTP_202_ACCEPTED)
def start(body: BulkUpdateStartIn, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    try:
        job = start_bulk_update(
            db,
            shop_id=body.shop,
            kind=body.kind,
            product_ids=body.product_ids,
            defer=background_tasks.add_task,
        )
    except (CaptionConfigError, ValueError) as e:
        logger.warning("caption.bulk.rejected shop=%s kind=%s err=%s", body.shop, body.kind.value, e)
        raise HTTPException(status_code=400, detail=str(e))
    return BulkUpdateStartOut(productCatalogBulkUpdateRequestId=job.id)


# 最近一次任务
@router.get("", response_model=BulkUpdateProgressOut)
def latest_progress(shop: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    progress = get_bulk_update_progress(db, shop_id=shop)
    if progress is None:
        raise HTTPException(status_code=404, detail="No bulk update request for shop")
    return progress.to_dict()


@router.get("/{request_id}", response_model=BulkUpdateProgressOut)
def progress(request_id: str, shop: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    progress = get_bulk_update_progress(db, shop_id=shop, request_id=request_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Bulk update request not found")
    return progress.to_dict()
