import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app
from app.orchestration.caption_products import bulk_update_task


BASE = f"{settings.API_PREFIX}/caption/bulk"


@pytest.fixture()
def client(db_factory):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def fake_clients(monkeypatch, fake_shopify_cls, fake_captioner_cls, product_factory):
    shopify = fake_shopify_cls([[product_factory(1), product_factory(2)], [product_factory(3)]])
    monkeypatch.setattr(bulk_update_task, "shopify_client_for_shop", lambda db, shop: shopify)
    monkeypatch.setattr(bulk_update_task, "visionati_client_for_shop", lambda db, shop: fake_captioner_cls())
    return shopify


def test_start_and_poll_progress(client, shop_configured, fake_clients):
    # TestClient 在 post 返回前跑完 BackgroundTasks
    resp = client.post(BASE, json={"shop": shop_configured, "kind": "all"})
    assert resp.status_code == 202
    request_id = resp.json()["productCatalogBulkUpdateRequestId"]

    progress = client.get(f"{BASE}/{request_id}", params={"shop": shop_configured})
    assert progress.status_code == 200
    body = progress.json()
    assert body["productCatalogBulkUpdateRequestId"] == request_id
    assert body["productDescriptionUpdateCount"] == 3
    assert body["end_time"] is not None
    assert body["error"] is False

    latest = client.get(BASE, params={"shop": shop_configured})
    assert latest.json()["productCatalogBulkUpdateRequestId"] == request_id


def test_start_hands_sweep_to_background_task(client, monkeypatch, shop_configured, fake_clients):
    # 请求处理函数本身不扫描，只把任务交给 BackgroundTasks
    handed_off = []
    monkeypatch.setattr(bulk_update_task, "run_bulk_update_inline", handed_off.append)

    resp = client.post(BASE, json={"shop": shop_configured, "kind": "all"})
    assert resp.status_code == 202
    request_id = resp.json()["productCatalogBulkUpdateRequestId"]

    assert handed_off == [request_id]
    assert fake_clients.fetch_calls == []
    body = client.get(f"{BASE}/{request_id}", params={"shop": shop_configured}).json()
    assert body["end_time"] is None


def test_start_queued_mode_leaves_job_open(client, monkeypatch, shop_configured, fake_clients):
    sent = []

    class _Task:
        @staticmethod
        def apply_async(**kw):
            sent.append(kw)

    monkeypatch.setattr(settings, "SYNC_TASKS_INLINE", False)
    monkeypatch.setattr(bulk_update_task, "run_bulk_update", _Task)

    resp = client.post(BASE, json={"shop": shop_configured, "kind": "all"})
    assert resp.status_code == 202
    request_id = resp.json()["productCatalogBulkUpdateRequestId"]

    assert sent == [{"args": [request_id], "task_id": f"caption-bulk:{request_id}"}]
    body = client.get(f"{BASE}/{request_id}", params={"shop": shop_configured}).json()
    assert body["end_time"] is None
    assert fake_clients.fetch_calls == []


def test_start_without_session_is_rejected(client, db):
    resp = client.post(BASE, json={"shop": "nobody.myshopify.com", "kind": "all"})
    assert resp.status_code == 400
    assert client.get(BASE, params={"shop": "nobody.myshopify.com"}).status_code == 404


def test_list_kind_without_ids_is_rejected(client, shop_configured, fake_clients):
    resp = client.post(BASE, json={"shop": shop_configured, "kind": "product_list", "product_ids": []})
    assert resp.status_code == 400


def test_progress_of_other_shop_is_not_visible(client, shop_configured, fake_clients):
    request_id = client.post(BASE, json={"shop": shop_configured}).json()["productCatalogBulkUpdateRequestId"]
    resp = client.get(f"{BASE}/{request_id}", params={"shop": "other.myshopify.com"})
    assert resp.status_code == 404


def test_shop_auto_description_toggle(client, db):
    url = f"{settings.API_PREFIX}/shops/toggle.myshopify.com/auto-image-descriptions"
    assert client.get(url).json() == {"enabled": False}
    assert client.put(url, json={"enabled": True}).json() == {"enabled": True}
    assert client.get(url).json() == {"enabled": True}


def test_health(client):
    assert client.get(f"{settings.API_PREFIX}/health").json() == {"status": "ok"}
