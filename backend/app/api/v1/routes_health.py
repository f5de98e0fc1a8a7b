# 健康检查（含DB探活）

from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.db.session import engine

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: bool = False):
    # 默认只返回 ok；?db=true 时做一次轻量 DB ping
    if db:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            raise HTTPException(status_code=503, detail="database unavailable")
    return {"status": "ok"}
