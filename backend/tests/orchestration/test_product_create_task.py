import pytest

from app.core.config import settings
from app.integrations.shopify.errors import ShopifyRequestError, ShopSessionMissingError
from app.orchestration.caption_products import product_create_task
from app.orchestration.caption_products import shop_lock as shop_lock_module
from app.orchestration.caption_products.errors import ShopLockTimeoutError
from app.orchestration.caption_products.product_create_task import (
    ProductCreateOutcome,
    dispatch_product_create,
    handle_product_create,
)
from app.repository.description_update_repo import list_description_updates
from app.repository.webhook_request_repo import record_webhook_request, webhook_request_exists


SHOP = "test-shop.myshopify.com"


def _payload(n):
    return {"id": n, "admin_graphql_api_id": f"gid://shopify/Product/{n}", "title": f"Product {n}"}


def test_duplicate_delivery_is_processed_once(db, fake_shopify_cls, fake_captioner_cls, product_factory):
    product = product_factory(7)
    shopify = fake_shopify_cls(products=[product])
    captioner = fake_captioner_cls()

    first = handle_product_create(db, webhook_id="wh-1", shop=SHOP, payload=_payload(7),
                                  shopify=shopify, get_image_descriptions=captioner)
    second = handle_product_create(db, webhook_id="wh-1", shop=SHOP, payload=_payload(7),
                                   shopify=shopify, get_image_descriptions=captioner)

    assert first is ProductCreateOutcome.CAPTIONED
    assert second is ProductCreateOutcome.DUPLICATE
    assert len(shopify.updates) == 1
    assert len(captioner.calls) == 1
    assert len(list_description_updates(db, SHOP, product.id)) == 1
    assert webhook_request_exists(db, "wh-1")


def test_product_without_image_records_delivery_without_captioning(db, fake_shopify_cls, fake_captioner_cls, product_factory):
    shopify = fake_shopify_cls(products=[product_factory(8, image=False)])
    captioner = fake_captioner_cls()

    outcome = handle_product_create(db, webhook_id="wh-2", shop=SHOP, payload=_payload(8),
                                    shopify=shopify, get_image_descriptions=captioner)

    assert outcome is ProductCreateOutcome.NO_IMAGE
    assert captioner.calls == []
    assert shopify.updates == []
    assert webhook_request_exists(db, "wh-2")


def test_deleted_product_records_delivery(db, fake_shopify_cls, fake_captioner_cls):
    outcome = handle_product_create(db, webhook_id="wh-3", shop=SHOP, payload=_payload(9),
                                    shopify=fake_shopify_cls(), get_image_descriptions=fake_captioner_cls())
    assert outcome is ProductCreateOutcome.NOT_FOUND
    assert webhook_request_exists(db, "wh-3")


def test_failed_write_leaves_no_guard_so_redelivery_retries(db, fake_shopify_cls, fake_captioner_cls, product_factory):
    product = product_factory(10)
    failing = fake_shopify_cls(products=[product], fail_update_on=product.id)

    with pytest.raises(ShopifyRequestError):
        handle_product_create(db, webhook_id="wh-4", shop=SHOP, payload=_payload(10),
                              shopify=failing, get_image_descriptions=fake_captioner_cls())
    assert not webhook_request_exists(db, "wh-4")

    healthy = fake_shopify_cls(products=[product])
    outcome = handle_product_create(db, webhook_id="wh-4", shop=SHOP, payload=_payload(10),
                                    shopify=healthy, get_image_descriptions=fake_captioner_cls())
    assert outcome is ProductCreateOutcome.CAPTIONED
    assert len(healthy.updates) == 1
    assert webhook_request_exists(db, "wh-4")


def test_payload_without_product_gid_is_ignored(db, fake_shopify_cls, fake_captioner_cls):
    shopify = fake_shopify_cls()
    outcome = handle_product_create(db, webhook_id="wh-5", shop=SHOP, payload={"id": 1},
                                    shopify=shopify, get_image_descriptions=fake_captioner_cls())
    assert outcome is ProductCreateOutcome.IGNORED
    assert shopify.events == []
    assert not webhook_request_exists(db, "wh-5")


def test_missing_shop_session_raises_before_any_remote_call(db):
    with pytest.raises(ShopSessionMissingError):
        handle_product_create(db, webhook_id="wh-6", shop="nobody.myshopify.com", payload=_payload(1))
    assert not webhook_request_exists(db, "wh-6")


def test_dispatch_inline_uses_stored_clients(db, monkeypatch, fake_shopify_cls, fake_captioner_cls, product_factory):
    shopify = fake_shopify_cls(products=[product_factory(11)])
    monkeypatch.setattr(product_create_task, "shopify_client_for_shop", lambda db, shop: shopify)
    monkeypatch.setattr(product_create_task, "visionati_client_for_shop", lambda db, shop: fake_captioner_cls())

    outcome = dispatch_product_create("wh-7", SHOP, _payload(11), inline=True)

    assert outcome is ProductCreateOutcome.CAPTIONED
    assert len(shopify.updates) == 1
    db.expire_all()
    assert webhook_request_exists(db, "wh-7")


def test_dispatch_queued_sends_celery_task(monkeypatch):
    sent = []

    class _Task:
        @staticmethod
        def apply_async(**kw):
            sent.append(kw)

    monkeypatch.setattr(product_create_task, "handle_product_create_task", _Task)

    assert dispatch_product_create("wh-8", SHOP, _payload(1), inline=False) is None
    assert sent == [{"args": ["wh-8", SHOP, _payload(1)], "task_id": "product-create:wh-8"}]


class _Lock:
    def __init__(self, acquired=True, on_acquire=None):
        self.acquired = acquired
        self.on_acquire = on_acquire

    def acquire(self):
        if self.on_acquire:
            self.on_acquire()
        return self.acquired

    def release(self):
        pass


class _Redis:
    def __init__(self, lock):
        self._lock = lock
        self.calls = []

    def lock(self, name, timeout=None, blocking_timeout=None):
        self.calls.append({"name": name, "timeout": timeout, "blocking_timeout": blocking_timeout})
        return self._lock


def test_redelivery_while_captioning_writes_back_once(db, fake_shopify_cls, fake_captioner_cls, product_factory):
    # 没配 Redis：同一 webhook_id 的重投在第一次投递还在等描述时进来
    product = product_factory(12)
    shopify = fake_shopify_cls(products=[product])
    inner = fake_captioner_cls()
    outcomes = []

    def _captioner(urls):
        if not outcomes:
            outcomes.append(handle_product_create(db, webhook_id="wh-9", shop=SHOP, payload=_payload(12),
                                                  shopify=shopify, get_image_descriptions=inner))
        return inner(urls)

    outer = handle_product_create(db, webhook_id="wh-9", shop=SHOP, payload=_payload(12),
                                  shopify=shopify, get_image_descriptions=_captioner)

    assert outcomes == [ProductCreateOutcome.CAPTIONED]
    assert outer is ProductCreateOutcome.DUPLICATE
    assert len(shopify.updates) == 1
    assert len(list_description_updates(db, SHOP, product.id)) == 1
    assert webhook_request_exists(db, "wh-9")


def test_delivery_recorded_while_waiting_for_lock_is_skipped(db, monkeypatch, fake_shopify_cls, fake_captioner_cls, product_factory):
    shopify = fake_shopify_cls(products=[product_factory(13)])
    captioner = fake_captioner_cls()

    # 等锁期间另一个 worker 处理完同一投递
    def _other_worker_finished():
        record_webhook_request(db, webhook_request_id="wh-10", shop_id=SHOP, topic="products/create")

    client = _Redis(_Lock(on_acquire=_other_worker_finished))
    monkeypatch.setattr(shop_lock_module, "_redis", lambda: client)

    outcome = handle_product_create(db, webhook_id="wh-10", shop=SHOP, payload=_payload(13),
                                    shopify=shopify, get_image_descriptions=captioner)

    assert outcome is ProductCreateOutcome.DUPLICATE
    assert shopify.events == []
    assert captioner.calls == []
    assert client.calls[0]["blocking_timeout"] == settings.SHOP_LOCK_WEBHOOK_BLOCKING_TIMEOUT_SEC


def test_busy_shop_lock_fails_fast_so_shopify_redelivers(db, monkeypatch, fake_shopify_cls, fake_captioner_cls, product_factory):
    shopify = fake_shopify_cls(products=[product_factory(14)])
    client = _Redis(_Lock(acquired=False))
    monkeypatch.setattr(shop_lock_module, "_redis", lambda: client)

    with pytest.raises(ShopLockTimeoutError):
        handle_product_create(db, webhook_id="wh-11", shop=SHOP, payload=_payload(14),
                              shopify=shopify, get_image_descriptions=fake_captioner_cls())

    assert client.calls[0]["blocking_timeout"] < settings.SHOP_LOCK_BLOCKING_TIMEOUT_SEC
    assert shopify.events == []
    assert not webhook_request_exists(db, "wh-11")
