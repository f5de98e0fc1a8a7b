from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.model.shop import ShopAutoImageDescription, ShopSession, ShopVisionatiSettings


# ---------- shop session（OAuth 写入，这里只读 + 测试/脚本用的 upsert） ----------

def get_shop_session(db: Session, shop: str) -> Optional[ShopSession]:
    return db.get(ShopSession, shop)


def upsert_shop_session(db: Session, shop: str, access_token: str, scope: Optional[str] = None) -> ShopSession:
    row = db.get(ShopSession, shop)
    if row is None:
        row = ShopSession(shop=shop, access_token=access_token, scope=scope)
        db.add(row)
    else:
        row.access_token = access_token
        row.scope = scope
    db.commit()
    return row


# ---------- Visionati 设置 ----------

def get_visionati_settings(db: Session, shop_id: str) -> Optional[ShopVisionatiSettings]:
    return db.scalar(select(ShopVisionatiSettings).where(ShopVisionatiSettings.shop_id == shop_id))


def upsert_visionati_settings(
    db: Session,
    shop_id: str,
    *,
    api_key: Optional[str] = None,
    backend: Optional[str] = None,
    role: Optional[str] = None,
    custom_prompt: Optional[str] = None,
) -> ShopVisionatiSettings:
    row = get_visionati_settings(db, shop_id)
    if row is None:
        row = ShopVisionatiSettings(shop_id=shop_id)
        db.add(row)
    row.api_key = api_key
    row.backend = backend
    row.role = role
    row.custom_prompt = custom_prompt
    db.commit()
    return row


def update_visionati_credits(db: Session, shop_id: str, credits: Optional[int]) -> None:
    """
    每次 batch 完成后写回剩余 credits（没有设置行就新建一行）。
    失败回滚并继续抛：credits 不能悄悄漂移。
    """
    try:
        row = get_visionati_settings(db, shop_id)
        if row is None:
            row = ShopVisionatiSettings(shop_id=shop_id)
            db.add(row)
        row.credits = credits
        db.commit()
    except Exception:
        db.rollback()
        raise


# ---------- products/create 自动描述开关 ----------

def is_auto_image_descriptions_enabled(db: Session, shop_id: str) -> bool:
    row = db.get(ShopAutoImageDescription, shop_id)
    return bool(row and row.enabled)


def set_auto_image_descriptions(db: Session, shop_id: str, enabled: bool) -> ShopAutoImageDescription:
    row = db.get(ShopAutoImageDescription, shop_id)
    if row is None:
        row = ShopAutoImageDescription(shop_id=shop_id, enabled=enabled)
        db.add(row)
    else:
        row.enabled = enabled
    db.commit()
    return row
