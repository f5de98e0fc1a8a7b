"""products/create webhook：HMAC -> topic -> 开关 -> 幂等处理"""

import json

import pytest
from fastapi.testclient import TestClient

from app.api.v1.webhooks_shopify import _compute_hmac_base64
from app.core.config import settings
from app.main import app
from app.orchestration.caption_products import product_create_task
from app.repository.shop_settings_repo import set_auto_image_descriptions
from app.repository.webhook_request_repo import webhook_request_exists


SHOP = "test-shop.myshopify.com"
URL = f"{settings.API_PREFIX}/webhooks/shopify/products/create"


@pytest.fixture()
def client(db_factory):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def fake_clients(monkeypatch, fake_shopify_cls, fake_captioner_cls, product_factory):
    shopify = fake_shopify_cls(products=[product_factory(1)])
    monkeypatch.setattr(product_create_task, "shopify_client_for_shop", lambda db, shop: shopify)
    monkeypatch.setattr(product_create_task, "visionati_client_for_shop", lambda db, shop: fake_captioner_cls())
    return shopify


def _post(client, body, *, webhook_id="wh-100", topic="products/create", hmac_header=None, shop=SHOP):
    raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    headers = {
        "X-Shopify-Topic": topic,
        "X-Shopify-Shop-Domain": shop,
        "X-Shopify-Webhook-Id": webhook_id,
        "X-Shopify-Hmac-Sha256": hmac_header if hmac_header is not None
        else _compute_hmac_base64(settings.SHOPIFY_WEBHOOK_SECRET, raw),
        "Content-Type": "application/json",
    }
    return client.post(URL, content=raw, headers=headers)


PAYLOAD = {"id": 1, "admin_graphql_api_id": "gid://shopify/Product/1"}


def test_invalid_or_missing_hmac_is_rejected(client, db):
    assert _post(client, PAYLOAD, hmac_header="bm9wZQ==").status_code == 401
    assert _post(client, PAYLOAD, hmac_header="").status_code == 401


def test_other_topics_are_acknowledged_and_ignored(client, db, fake_clients):
    resp = _post(client, PAYLOAD, topic="products/update")
    assert resp.status_code == 200
    assert resp.json()["ignored"] == "topic=products/update"
    assert fake_clients.events == []


def test_missing_webhook_id_is_bad_request(client, db):
    assert _post(client, PAYLOAD, webhook_id="").status_code == 400


def test_invalid_json_is_bad_request(client, db):
    assert _post(client, b"{not json").status_code == 400


def test_disabled_shop_is_ignored(client, db, fake_clients):
    resp = _post(client, PAYLOAD)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "ignored": "auto_image_descriptions_disabled"}
    assert fake_clients.events == []


def test_enabled_shop_captions_once_per_delivery(client, db, fake_clients):
    set_auto_image_descriptions(db, SHOP, True)

    first = _post(client, PAYLOAD, webhook_id="wh-200")
    second = _post(client, PAYLOAD, webhook_id="wh-200")

    assert first.status_code == 200
    assert first.json() == {"ok": True, "outcome": "captioned"}
    assert second.json() == {"ok": True, "outcome": "duplicate"}
    assert len(fake_clients.updates) == 1
    db.expire_all()
    assert webhook_request_exists(db, "wh-200")


def test_processing_failure_returns_500_for_redelivery(client, db, fake_clients):
    set_auto_image_descriptions(db, SHOP, True)
    fake_clients.fail_update_on = "gid://shopify/Product/1"

    resp = _post(client, PAYLOAD, webhook_id="wh-300")

    assert resp.status_code == 500
    db.expire_all()
    assert not webhook_request_exists(db, "wh-300")
