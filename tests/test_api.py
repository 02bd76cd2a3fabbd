import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from smmrelay.main import create_app
from smmrelay.utils.log import Log
from conftest import FakeChannel

GROUP_JID = "120363000000000001@g.us"


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def client(tmp_path, channel):
    # файловая БД: соединения aiosqlite не переживают смену event loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)
    app = create_app(
        session_factory=async_sessionmaker(bind=engine, expire_on_commit=False),
        bind=engine,
        channel=channel,
        log=Log(log_dir=str(tmp_path / "log"), log_print=False),
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth(client):
    resp = client.post("/auth/token", data={"username": "admin", "password": "admin"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def setup(client, auth):
    """Панель, подключённое устройство и заказ с данными провайдера."""
    panel = client.post("/panels/", json={"name": "Main Panel", "alias": "MP"}, headers=auth).json()
    device = client.post("/devices/", json={"name": "Phone", "status": "connected"}, headers=auth).json()
    order = client.post("/orders/", json={
        "panel_id": panel["id"],
        "external_order_id": "1001",
        "provider_order_id": "7416281",
        "provider_name": "fastsmm",
        "service_id": "12",
        "quantity": 1000,
        "remains": 100,
    }, headers=auth).json()
    return {"panel": panel, "device": device, "order": order}


def test_requires_token(client):
    assert client.get("/panels/").status_code == 401
    assert client.get("/panels/", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_wrong_password(client):
    resp = client.post("/auth/token", data={"username": "admin", "password": "wrong"})
    assert resp.status_code == 401


def test_me(client, auth):
    resp = client.get("/auth/me", headers=auth)
    assert resp.status_code == 200
    assert resp.json()["login"] == "admin"
    assert "password" not in resp.json()


def test_forward_and_audit_trail(client, auth, channel, setup):
    group = client.post("/provider-groups/", json={
        "panel_id": setup["panel"]["id"],
        "provider_name": "fastsmm",
        "group_id": GROUP_JID,
        "group_name": "Fast group",
        "use_simple_format": True,
    }, headers=auth)
    assert group.status_code == 201

    order_id = setup["order"]["id"]
    command = client.post(f"/orders/{order_id}/commands", json={"command": "REFILL"}, headers=auth)
    assert command.status_code == 201

    resp = client.post("/provider-groups/forward", json={"order_id": order_id, "command": "REFILL"}, headers=auth)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Forwarded to Fast group"
    assert channel.sent == [(setup["device"]["id"], GROUP_JID, "7416281 refill")]

    [row] = client.get(f"/orders/{order_id}/commands", headers=auth).json()
    assert row["forwarded_to"] == "Fast group"
    assert row["response"]["groupName"] == "Fast group"
    assert row["response"]["providerOrderId"] == "7416281"
    assert row["response"]["usedServiceIdRouting"] is False
    assert "timestamp" in row["response"]


def test_forward_without_group_reports_no_group(client, auth, setup):
    resp = client.post(
        "/provider-groups/forward",
        json={"order_id": setup["order"]["id"], "command": "CANCEL"},
        headers=auth,
    )

    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is False
    assert body["reason"] == "no_group"
    assert body["panel_name"] == "MP"


def test_forward_rejects_unknown_command(client, auth, setup):
    resp = client.post(
        "/provider-groups/forward",
        json={"order_id": setup["order"]["id"], "command": "DELETE"},
        headers=auth,
    )
    assert resp.status_code == 422


def test_bulk_forward(client, auth, channel, setup):
    client.post("/provider-groups/", json={
        "panel_id": setup["panel"]["id"],
        "group_id": GROUP_JID,
        "group_name": "Default",
        "use_simple_format": True,
    }, headers=auth)

    resp = client.post(
        "/provider-groups/bulk-forward",
        json={"order_ids": [setup["order"]["id"], 4242], "command": "SPEED_UP"},
        headers=auth,
    )

    body = resp.json()
    assert body["total"] == 2
    assert body["successful"] == 1
    assert body["results"][1]["reason"] == "no_order"
    assert channel.sent[0][2] == "7416281 speed up"


def test_group_requires_destination(client, auth, setup):
    resp = client.post("/provider-groups/", json={
        "panel_id": setup["panel"]["id"],
        "group_name": "Empty",
    }, headers=auth)
    assert resp.status_code == 422


def test_group_with_service_rules_only(client, auth, setup):
    resp = client.post("/provider-groups/", json={
        "panel_id": setup["panel"]["id"],
        "group_name": "By service",
        "service_id_rules": {"12": "6281111"},
    }, headers=auth)

    assert resp.status_code == 201
    assert resp.json()["service_id_rules"] == {"12": "6281111"}
    listed = client.get("/provider-groups/", params={"panel_id": setup["panel"]["id"]}, headers=auth).json()
    assert [g["group_name"] for g in listed] == ["By service"]


def test_group_on_foreign_panel_is_not_found(client, auth):
    resp = client.post("/provider-groups/", json={
        "panel_id": 999,
        "group_id": GROUP_JID,
        "group_name": "Nope",
    }, headers=auth)
    assert resp.status_code == 404


def test_update_and_delete_group(client, auth, setup):
    group = client.post("/provider-groups/", json={
        "panel_id": setup["panel"]["id"],
        "group_id": GROUP_JID,
        "group_name": "Old",
    }, headers=auth).json()

    updated = client.put(f"/provider-groups/{group['id']}", json={"group_name": "New", "is_active": False}, headers=auth)
    assert updated.json()["group_name"] == "New"
    assert updated.json()["is_active"] is False
    assert updated.json()["group_id"] == GROUP_JID

    assert client.delete(f"/provider-groups/{group['id']}", headers=auth).status_code == 204
    assert client.get(f"/provider-groups/{group['id']}", headers=auth).status_code == 404


def test_group_test_message(client, auth, channel, setup):
    group = client.post("/provider-groups/", json={
        "panel_id": setup["panel"]["id"],
        "group_id": GROUP_JID,
        "group_name": "Providers",
    }, headers=auth).json()

    resp = client.post(f"/provider-groups/{group['id']}/test", headers=auth)

    assert resp.json()["success"] is True
    text = channel.sent[0][2]
    assert "Provider Group: Providers" in text
    assert "Panel: MP" in text


def test_whatsapp_groups_of_device(client, auth, channel, setup):
    channel.groups = [{"id": GROUP_JID, "subject": "Providers", "participants": 12}]

    resp = client.get(f"/provider-groups/whatsapp-groups/{setup['device']['id']}", headers=auth)

    assert resp.status_code == 200
    assert resp.json()[0]["subject"] == "Providers"


def test_whatsapp_groups_of_disconnected_device(client, auth, setup):
    device_id = setup["device"]["id"]
    client.put(f"/devices/{device_id}/status", json={"status": "disconnected"}, headers=auth)

    resp = client.get(f"/provider-groups/whatsapp-groups/{device_id}", headers=auth)

    assert resp.status_code == 400


def test_direct_message(client, auth, channel, setup):
    resp = client.post("/provider-groups/direct-message", json={
        "target_number": "+62 811 222",
        "message": "hello",
        "device_id": setup["device"]["id"],
    }, headers=auth)

    assert resp.json()["success"] is True
    assert channel.sent == [(setup["device"]["id"], "62811222@s.whatsapp.net", "hello")]


def test_provider_config_crud_and_conflict(client, auth):
    created = client.post("/provider-config/", json={"provider_name": "fastsmm", "alias": "Fast"}, headers=auth)
    assert created.status_code == 201

    duplicate = client.post("/provider-config/", json={"provider_name": "fastsmm"}, headers=auth)
    assert duplicate.status_code == 409

    config_id = created.json()["id"]
    updated = client.put(f"/provider-config/{config_id}", json={"forward_cancel": False}, headers=auth).json()
    assert updated["forward_cancel"] is False
    assert updated["alias"] == "Fast"

    assert client.delete(f"/provider-config/{config_id}", headers=auth).status_code == 204
    assert client.get("/provider-config/", headers=auth).json() == []


def test_manual_destination_upsert(client, auth):
    assert client.get("/provider-config/manual-destination", headers=auth).json() is None

    first = client.post("/provider-config/manual-destination", json={"whatsapp_number": "62811"}, headers=auth).json()
    second = client.post("/provider-config/manual-destination", json={"whatsapp_group_jid": GROUP_JID}, headers=auth).json()

    assert first["id"] == second["id"]
    assert second["provider_name"] == "MANUAL"
    assert second["whatsapp_number"] is None
    assert second["whatsapp_group_jid"] == GROUP_JID


def test_provider_config_test_message(client, auth, channel, setup):
    config = client.post("/provider-config/", json={
        "provider_name": "fastsmm",
        "whatsapp_number": "62811",
        "telegram_chat_id": "-100",
    }, headers=auth).json()

    sent = client.post(f"/provider-config/{config['id']}/test", json={"platform": "whatsapp_number"}, headers=auth)
    telegram = client.post(f"/provider-config/{config['id']}/test", json={"platform": "telegram"}, headers=auth)
    missing = client.post(f"/provider-config/{config['id']}/test", json={"platform": "whatsapp_group"}, headers=auth)

    assert sent.json()["success"] is True
    assert channel.sent[0][1] == "62811@s.whatsapp.net"
    assert telegram.json()["reason"] == "unsupported"
    assert missing.status_code == 400
