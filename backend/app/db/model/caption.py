from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.utils.clock import now_utc


def _uuid() -> str:
    return str(uuid.uuid4())


class ProductDescriptionUpdate(Base):
    """
    描述变更审计表（只追加）：每次成功写回 Shopify 记一行 old -> new。
    本服务不 update / delete 这张表。
    """
    __tablename__ = "shop_product_description_updates"
    __table_args__ = (
        Index("ix_shop_product_description_updates_shop_product", "shop_id", "product_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    product_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)   # gid://shopify/Product/...
    shop_id: Mapped[str] = mapped_column(String(255), nullable=False)
    old_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)


class BulkUpdateRequest(Base):
    """
    一次 bulk 描述任务。
      - end_time 为空 = 进行中
      - 结束时一次性写 end_time + error，之后不再变
    """
    __tablename__ = "shop_product_catalog_bulk_update_requests"
    __table_args__ = (
        Index("ix_shop_product_catalog_bulk_update_requests_shop_start", "shop_id", "start_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shop_id: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, default="all")
    # product_list / approve_list 的商品 id（JSON 文本，保持 sqlite 可跑）
    product_ids: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    description_updates: Mapped[list["BulkUpdateRequestDescriptionUpdate"]] = relationship(
        "BulkUpdateRequestDescriptionUpdate",
        back_populates="bulk_update_request",
    )

    @property
    def in_progress(self) -> bool:
        return self.end_time is None


class BulkUpdateRequestDescriptionUpdate(Base):
    """审计行 -> bulk 任务 的关联（和审计行同一事务写入）"""
    __tablename__ = "shop_bulk_update_requests_description_updates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bulk_update_request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shop_product_catalog_bulk_update_requests.id"),
        nullable=False,
        index=True,
    )
    product_description_update_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shop_product_description_updates.id"),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)

    bulk_update_request: Mapped[BulkUpdateRequest] = relationship(
        "BulkUpdateRequest", back_populates="description_updates"
    )


class WebhookRequest(Base):
    """已处理的 webhook 投递（id = X-Shopify-Webhook-Id）；存在即视为处理过"""
    __tablename__ = "shop_webhook_requests"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(255), nullable=False)
    topic: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)


class WebhookRequestDescriptionUpdate(Base):
    __tablename__ = "shop_webhook_requests_description_updates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    webhook_request_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("shop_webhook_requests.id"), nullable=False, index=True
    )
    product_description_update_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shop_product_description_updates.id"),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)
