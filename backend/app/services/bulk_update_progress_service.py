from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.repository.bulk_update_repo import get_bulk_update_request, latest_bulk_update_request
from app.repository.description_update_repo import count_for_bulk_update_request


@dataclass(frozen=True)
class BulkUpdateProgress:
    request_id: str
    kind: str
    description_update_count: int
    start_time: datetime
    end_time: Optional[datetime]
    error: Optional[bool]

    @property
    def in_progress(self) -> bool:
        return self.end_time is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productCatalogBulkUpdateRequestId": self.request_id,
            "productDescriptionUpdateCount": self.description_update_count,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "error": self.error,
        }


def get_bulk_update_progress(
    db: Session, *, shop_id: str, request_id: Optional[str] = None
) -> Optional[BulkUpdateProgress]:
    """不给 request_id 时取该 shop 最近一次任务；找不到返回 None"""
    if request_id:
        job = get_bulk_update_request(db, request_id, shop_id=shop_id)
    else:
        job = latest_bulk_update_request(db, shop_id)
    if job is None:
        return None

    return BulkUpdateProgress(
        request_id=job.id,
        kind=job.kind,
        description_update_count=count_for_bulk_update_request(db, job.id),
        start_time=job.start_time,
        end_time=job.end_time,
        error=job.error,
    )
