# shop 级开关：products/create 是否自动生成描述

from __future__ import annotations
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repository.shop_settings_repo import (
    is_auto_image_descriptions_enabled,
    set_auto_image_descriptions,
)


router = APIRouter(prefix="/shops/{shop}", tags=["shop.settings"])


class AutoImageDescriptionsIO(BaseModel):
    enabled: bool


@router.get("/auto-image-descriptions", response_model=AutoImageDescriptionsIO)
def get_auto_image_descriptions(shop: str, db: Session = Depends(get_db)):
    return AutoImageDescriptionsIO(enabled=is_auto_image_descriptions_enabled(db, shop))


@router.put("/auto-image-descriptions", response_model=AutoImageDescriptionsIO)
def put_auto_image_descriptions(shop: str, body: AutoImageDescriptionsIO, db: Session = Depends(get_db)):
    row = set_auto_image_descriptions(db, shop, body.enabled)
    return AutoImageDescriptionsIO(enabled=row.enabled)
