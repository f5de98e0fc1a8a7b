"""公共 fixture：内存 sqlite + 假的 Shopify / Visionati 协作者"""

import os

# 必须在导入 app.* 之前设置（Settings 在导入时读取环境）
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SYNC_TASKS_INLINE", "true")
os.environ.setdefault("SHOPIFY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("VISIONATI_API_KEY", "test-visionati-key")
os.environ["REDIS_URL"] = ""

from typing import Dict, Iterable, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import app.db.model  # noqa: F401  注册所有模型
from app.db import session as db_session
from app.db.base import Base
from app.integrations.shopify.errors import ShopifyRequestError
from app.integrations.shopify.product_types import PageInfo, Product, ProductConnection
from app.repository.shop_settings_repo import upsert_shop_session, upsert_visionati_settings


SHOP = "test-shop.myshopify.com"


@pytest.fixture()
def db_factory(monkeypatch):
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session, future=True)

    # get_db / session_scope 都在调用时读模块级 SessionLocal
    monkeypatch.setattr(db_session, "SessionLocal", factory)
    monkeypatch.setattr("app.api.v1.webhooks_shopify.SessionLocal", factory)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def db(db_factory) -> Session:
    s = db_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def shop_configured(db) -> str:
    """shop 有 session + Visionati 设置"""
    upsert_shop_session(db, SHOP, "shpat_test_token")
    upsert_visionati_settings(db, SHOP, api_key="shop-visionati-key", role="ecommerce", backend="gemini")
    return SHOP


# ---------------- 假 Shopify ----------------

def make_product(n: int, *, image: bool = True, description: str = "") -> Product:
    return Product(
        id=f"gid://shopify/Product/{n}",
        title=f"Product {n}",
        description=description or f"Old description {n}",
        featured_image_url=f"https://cdn.shopify.com/p{n}.jpg" if image else None,
    )


def make_pages(pages: Sequence[Sequence[Product]]) -> List[ProductConnection]:
    """游标就是下一页的下标"""
    out = []
    for i, nodes in enumerate(pages):
        has_next = i < len(pages) - 1
        out.append(ProductConnection(
            nodes=list(nodes),
            page_info=PageInfo(
                start_cursor=str(i),
                end_cursor=str(i + 1) if has_next else str(i),
                has_next_page=has_next,
                has_previous_page=i > 0,
            ),
        ))
    return out


class FakeShopify:
    def __init__(
        self,
        pages: Optional[Sequence[Sequence[Product]]] = None,
        *,
        products: Iterable[Product] = (),
        fail_update_on: Optional[str] = None,
        fail_fetch_on_page: Optional[int] = None,
    ):
        self.shop = SHOP
        self.pages = make_pages(pages or [])
        self.products: Dict[str, Product] = {p.id: p for p in products}
        for conn in self.pages:
            for p in conn.nodes:
                self.products.setdefault(p.id, p)
        self.fail_update_on = fail_update_on
        self.fail_fetch_on_page = fail_fetch_on_page
        self.fetch_calls: List[dict] = []
        self.updates: List[tuple] = []
        self.events: List[tuple] = []

    def get_products(self, *, query=None, first=None, after=None, last=None, before=None) -> ProductConnection:
        idx = int(after) if after is not None else 0
        self.fetch_calls.append({"query": query, "first": first, "after": after, "last": last, "before": before})
        self.events.append(("fetch", idx))
        if self.fail_fetch_on_page == idx:
            raise ShopifyRequestError(f"products page {idx} failed")
        return self.pages[idx]

    def get_product(self, product_id: str) -> Optional[Product]:
        self.events.append(("get_product", product_id))
        return self.products.get(product_id)

    def update_product_description(self, product_id: str, description_html: str) -> Product:
        if product_id == self.fail_update_on:
            raise ShopifyRequestError(f"productUpdate failed for {product_id}")
        self.updates.append((product_id, description_html))
        self.events.append(("update", product_id))
        return Product(id=product_id, description=description_html)


# ---------------- 假 Visionati（get_image_descriptions 可调用对象） ----------------

class FakeCaptioner:
    def __init__(self, *, drop: int = 0, events: Optional[list] = None):
        self.drop = drop
        self.calls: List[List[str]] = []
        self.events = events

    @staticmethod
    def description_for(url: str) -> str:
        return f"<p>AI description for {url}</p>"

    def __call__(self, image_urls: List[str]) -> Dict[str, str]:
        self.calls.append(list(image_urls))
        if self.events is not None:
            self.events.append(("caption", len(image_urls)))
        kept = image_urls[: len(image_urls) - self.drop] if self.drop else image_urls
        return {url: self.description_for(url) for url in kept}


@pytest.fixture()
def fake_shopify_cls():
    return FakeShopify


@pytest.fixture()
def fake_captioner_cls():
    return FakeCaptioner


@pytest.fixture()
def product_factory():
    return make_product
