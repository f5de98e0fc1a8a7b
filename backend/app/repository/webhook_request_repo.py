from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.model.caption import WebhookRequest, WebhookRequestDescriptionUpdate


logger = logging.getLogger(__name__)


def webhook_request_exists(db: Session, webhook_request_id: str) -> bool:
    return db.get(WebhookRequest, webhook_request_id) is not None


"""
记录已处理的 webhook 投递（流水线全部成功后最后一步写）。
    - 有审计行时一并写关联行
    - 并发重复投递撞主键：回滚后返回 False（另一边已经记过）
"""
def record_webhook_request(
    db: Session,
    *,
    webhook_request_id: str,
    shop_id: str,
    topic: str,
    product_description_update_id: Optional[str] = None,
) -> bool:
    try:
        db.add(WebhookRequest(id=webhook_request_id, shop_id=shop_id, topic=topic))
        db.flush()
        if product_description_update_id:
            db.add(WebhookRequestDescriptionUpdate(
                webhook_request_id=webhook_request_id,
                product_description_update_id=product_description_update_id,
            ))
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        logger.warning("webhook.request.duplicate_insert id=%s shop=%s", webhook_request_id, shop_id)
        return False
    except Exception:
        db.rollback()
        raise
