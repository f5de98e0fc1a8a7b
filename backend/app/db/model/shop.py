from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ShopSession(Base):
    """
    离线 access token（OAuth 安装流程写入，本服务只读）。
    后台任务 / webhook 用它构造 ShopifyClient。
    """
    __tablename__ = "shop_sessions"

    shop: Mapped[str] = mapped_column(String(255), primary_key=True)          # xxx.myshopify.com
    access_token: Mapped[str] = mapped_column(String(255), nullable=False)
    scope: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ShopVisionatiSettings(Base):
    __tablename__ = "shop_visionati_settings"

    shop_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    api_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)   # 为空时回退到 VISIONATI_API_KEY
    backend: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    custom_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    credits: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)       # 最近一次 batch 返回的剩余额度

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class ShopAutoImageDescription(Base):
    """products/create webhook 是否自动生成描述（按 shop 开关）"""
    __tablename__ = "shop_auto_image_descriptions"

    shop_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
