from sqlalchemy.future import select

from smmrelay.models import Device, OrderCommand, Panel, User
from smmrelay.models.types import ServiceIdRules
from smmrelay.schemas.forwarding import ForwardLogEntry, ForwardReason
from smmrelay.services.forwarding.delivery import direct_jid, normalize_destination
from smmrelay.services.forwarding.service import normalize_command
from conftest import FIXED_NOW, FakeChannel

GROUP_JID = "120363000000000001@g.us"


async def command_rows(session_factory, order_id):
    async with session_factory() as session:
        result = await session.execute(
            select(OrderCommand).where(OrderCommand.order_id == order_id).order_by(OrderCommand.id)
        )
        return list(result.scalars().all())


# ────────────── Адреса ──────────────
def test_normalize_destination():
    assert normalize_destination(GROUP_JID) == GROUP_JID
    assert normalize_destination("6281234@s.whatsapp.net") == "6281234@s.whatsapp.net"
    assert normalize_destination("+62 812-34") == "6281234@s.whatsapp.net"
    assert direct_jid("(62) 811") == "62811@s.whatsapp.net"


def test_normalize_command():
    assert normalize_command("speed_up") == "SPEED_UP"
    assert normalize_command(" refill ") == "REFILL"


# ────────────── Пересылка через группу ──────────────
async def test_forward_refill_to_provider_group(service, channel, session_factory, tenant, make_order, make_group, make_command):
    group = await make_group(tenant, provider_name="fastsmm", use_simple_format=True)
    order = await make_order(tenant, provider_name="fastsmm", provider_order_id="7416281", service_id="12")
    await make_command(order, "REFILL")

    result = await service.forward_to_group(order.id, "refill", tenant["user"].id)

    assert result.success is True
    assert result.message == "Forwarded to Providers"
    assert result.source == "ProviderGroup"
    assert result.group_id == group.id
    assert result.used_provider_order_id is True
    assert result.used_service_id_routing is False
    assert result.service_id == "12"
    assert channel.sent == [(tenant["device"].id, GROUP_JID, "7416281 refill")]

    [row] = await command_rows(session_factory, order.id)
    assert row.forwarded_to == "Providers"
    assert row.response["groupId"] == group.id
    assert row.response["groupName"] == "Providers"
    assert row.response["providerOrderId"] == "7416281"
    assert row.response["targetJid"] == GROUP_JID
    assert row.response["forwarded"] is True
    entry = ForwardLogEntry.from_record(row.response)
    assert entry.timestamp == FIXED_NOW


async def test_service_id_routing_sends_to_rule_destination(service, channel, tenant, make_order, make_group):
    await make_group(tenant, service_id_rules=ServiceIdRules({"12": "+62 811 1111"}), use_simple_format=True)
    order = await make_order(tenant, service_id="12")

    result = await service.forward_to_group(order.id, "CANCEL", tenant["user"].id)

    assert result.success is True
    assert result.used_service_id_routing is True
    assert result.target == "628111111@s.whatsapp.net"
    assert channel.sent[0][1] == "628111111@s.whatsapp.net"


async def test_provider_alias_in_template(service, channel, tenant, make_order, make_group, make_config):
    await make_group(tenant, provider_name="fastsmm", message_template="{providerAlias}: {orderId} {command}")
    await make_config(tenant, provider_name="fastsmm", alias="Fast")
    order = await make_order(tenant, provider_name="fastsmm", provider_order_id="P1")

    await service.forward_to_group(order.id, "SPEED_UP", tenant["user"].id)

    assert channel.sent[0][2] == "Fast: P1 speed_up"


async def test_no_group_reports_panel_name(service, channel, add, tenant, make_order):
    order = await make_order(tenant)

    result = await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert result.success is False
    assert result.reason == ForwardReason.NO_GROUP
    assert result.panel_name == "MP"
    assert 'panel "MP"' in result.message
    assert channel.sent == []

    bare = await add(Panel(user_id=tenant["user"].id, name="Backup Panel"))
    order = await make_order({**tenant, "panel": bare})
    result = await service.forward_to_group(order.id, "REFILL", tenant["user"].id)
    assert result.panel_name == "Backup Panel"


async def test_unknown_order_is_no_order(service, tenant):
    result = await service.forward_to_group(99999, "REFILL", tenant["user"].id)

    assert result.success is False
    assert result.reason == ForwardReason.NO_ORDER


async def test_orders_of_other_users_are_invisible(service, add, tenant, make_order, make_group):
    await make_group(tenant)
    order = await make_order(tenant)
    stranger = await add(User(login="stranger"))

    result = await service.forward_to_group(order.id, "REFILL", stranger.id)

    assert result.reason == ForwardReason.NO_ORDER


# ────────────── Выбор устройства ──────────────
async def test_device_precedence(service, channel, add, tenant, make_order, make_group):
    other = await add(Device(user_id=tenant["user"].id, name="Second"))
    await make_group(tenant, device_id=other.id, use_simple_format=True)
    order = await make_order(tenant)

    await service.forward_to_group(order.id, "REFILL", tenant["user"].id, device_id=777)
    await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert [sent[0] for sent in channel.sent] == [777, other.id]


async def test_connected_device_is_picked_automatically(service, channel, tenant, make_order, make_group):
    await make_group(tenant, use_simple_format=True)
    order = await make_order(tenant)

    await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert channel.sent[0][0] == tenant["device"].id


async def test_no_device(service, channel, add, make_order, make_group):
    user = await add(User(login="nodevice"))
    panel = await add(Panel(user_id=user.id, name="P"))
    await add(Device(user_id=user.id, name="Offline"))
    tenant = {"user": user, "panel": panel}
    await make_group(tenant)
    order = await make_order(tenant)

    result = await service.forward_to_group(order.id, "REFILL", user.id)

    assert result.success is False
    assert result.reason == ForwardReason.NO_DEVICE
    assert channel.sent == []


async def test_no_target(service, channel, tenant, make_order, make_group):
    await make_group(tenant, group_id=None)
    order = await make_order(tenant)

    result = await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert result.reason == ForwardReason.NO_TARGET
    assert channel.sent == []


# ────────────── Ошибки отправки и журнал ──────────────
async def test_send_failure_leaves_record_untouched(store, log, session_factory, tenant, make_order, make_group, make_command):
    from smmrelay.services.forwarding.service import GroupForwardingService

    channel = FakeChannel(fail_on={GROUP_JID})
    service = GroupForwardingService(store, channel, log, clock=lambda: FIXED_NOW)
    await make_group(tenant)
    order = await make_order(tenant)
    await make_command(order)

    result = await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert result.success is False
    assert result.reason == ForwardReason.SEND_FAILED
    assert GROUP_JID in result.message
    [row] = await command_rows(session_factory, order.id)
    assert row.forwarded_to is None
    assert row.response is None


async def test_repeated_forward_updates_the_same_row(service, session_factory, tenant, make_order, make_group, make_command):
    await make_group(tenant, provider_name="fastsmm", group_name="Fast", use_simple_format=True)
    await make_group(tenant, group_name="Default", group_id="120363000000000002@g.us", use_simple_format=True)
    order = await make_order(tenant, provider_name="fastsmm")
    await make_command(order, "REFILL")

    await service.forward_to_group(order.id, "REFILL", tenant["user"].id)
    await service.forward_to_provider(order, "REFILL", tenant["user"].id, provider_name=None)

    [row] = await command_rows(session_factory, order.id)
    assert row.forwarded_to == "Default"
    assert row.response["groupName"] == "Default"


async def test_only_matching_successful_command_rows_are_updated(service, session_factory, tenant, make_order, make_group, make_command):
    await make_group(tenant, use_simple_format=True)
    order = await make_order(tenant)
    await make_command(order, "REFILL", status="FAILED")
    await make_command(order, "CANCEL")

    result = await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert result.success is True
    rows = await command_rows(session_factory, order.id)
    assert all(row.response is None for row in rows)


async def test_record_write_failure_does_not_fail_forward(service, store, channel, tenant, make_order, make_group, make_command):
    async def broken_update(*args, **kwargs):
        raise RuntimeError("database is locked")

    store.update_command_record = broken_update
    await make_group(tenant, use_simple_format=True)
    order = await make_order(tenant)
    await make_command(order)

    result = await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert result.success is True
    assert len(channel.sent) == 1


async def test_rule_lookup_failure_is_returned_as_send_failed(service, store, channel, tenant, make_order, make_group):
    async def locked(*args, **kwargs):
        raise RuntimeError("database is locked")

    await make_group(tenant, use_simple_format=True)
    order = await make_order(tenant, service_id="12")
    store.find_routing_rules = locked

    result = await service.forward_to_provider(order, "REFILL", tenant["user"].id)

    assert result.success is False
    assert result.reason == ForwardReason.SEND_FAILED
    assert result.message == "database is locked"
    assert channel.sent == []


async def test_order_load_failure_is_returned_as_send_failed(service, store, tenant):
    async def locked(*args, **kwargs):
        raise RuntimeError("database is locked")

    store.get_order = locked

    result = await service.forward_to_group(1, "CANCEL", tenant["user"].id)

    assert result.reason == ForwardReason.SEND_FAILED
    assert result.message == "database is locked"


async def test_inactive_provider_config_gives_no_alias(service, channel, tenant, make_order, make_group, make_config):
    await make_group(tenant, provider_name="fastsmm", message_template="{providerAlias}")
    await make_config(tenant, provider_name="fastsmm", alias="Fast", is_active=False)
    order = await make_order(tenant, provider_name="fastsmm")

    await service.forward_to_group(order.id, "REFILL", tenant["user"].id)

    assert channel.sent[0][2] == "fastsmm"


# ────────────── Новый заказ ──────────────
async def test_forward_new_order_requires_provider_info(service, channel, tenant, make_order, make_group):
    await make_group(tenant)
    order = await make_order(tenant)

    result = await service.forward_new_order(order, tenant["user"].id)

    assert result.success is False
    assert result.reason == ForwardReason.NO_PROVIDER
    assert channel.sent == []


async def test_forward_new_order_without_order(service, tenant):
    result = await service.forward_new_order(None, tenant["user"].id)

    assert result.reason == ForwardReason.NO_ORDER


async def test_forward_new_order_uses_new_order_template(service, channel, tenant, make_order, make_group):
    await make_group(tenant, provider_name="fastsmm", new_order_template="NEW {orderId} via {providerName}")
    order = await make_order(tenant, provider_name="fastsmm", provider_order_id="P5")

    result = await service.forward_new_order(order, tenant["user"].id)

    assert result.success is True
    assert channel.sent[0][2] == "NEW P5 via fastsmm"


# ────────────── Массовая пересылка ──────────────
async def test_bulk_forward_isolates_failures(service, store, channel, tenant, make_order, make_group):
    await make_group(tenant, use_simple_format=True)
    first = await make_order(tenant, external_order_id="A1")
    broken = await make_order(tenant, external_order_id="B2")
    last = await make_order(tenant, external_order_id="C3")

    get_order = store.get_order

    async def flaky_get_order(order_id, user_id):
        if order_id == broken.id:
            raise RuntimeError("connection reset")
        return await get_order(order_id, user_id)

    store.get_order = flaky_get_order

    result = await service.bulk_forward([first.id, broken.id, 99999, last.id], "CANCEL", tenant["user"].id)

    assert result.total == 4
    assert result.successful == 2
    assert result.failed == 2
    assert [item.order_id for item in result.results] == [first.id, broken.id, 99999, last.id]
    assert result.results[1].reason == ForwardReason.SEND_FAILED
    assert result.results[1].message == "connection reset"
    assert result.results[2].reason == ForwardReason.NO_ORDER
    assert [sent[2] for sent in channel.sent] == ["A1 cancel", "C3 cancel"]


async def test_bulk_forward_unexpected_error_is_tagged(service, tenant):
    async def crash(order_id, command, user_id, device_id=None):
        raise ValueError("unexpected")

    service.forward_to_group = crash

    result = await service.bulk_forward([5], "REFILL", tenant["user"].id)

    assert result.failed == 1
    assert result.results[0].reason == ForwardReason.ERROR
    assert result.results[0].message == "unexpected"


# ────────────── Прямые и тестовые сообщения ──────────────
async def test_send_direct_message(service, channel):
    result = await service.send_direct_message("+62 811-222", "hello", device_id=3)

    assert result.success is True
    assert result.target == "62811222@s.whatsapp.net"
    assert channel.sent == [(3, "62811222@s.whatsapp.net", "hello")]


async def test_send_direct_message_failure(store, log):
    from smmrelay.services.forwarding.service import GroupForwardingService

    channel = FakeChannel(fail_on={"62811222@s.whatsapp.net"})
    service = GroupForwardingService(store, channel, log)

    result = await service.send_direct_message("62811222", "hello", device_id=3)

    assert result.reason == ForwardReason.SEND_FAILED


async def test_send_test_message(service, channel, tenant, make_group):
    group = await make_group(tenant)

    result = await service.send_test_message(group, "MP", tenant["user"].id, now=FIXED_NOW)

    assert result.success is True
    assert result.group_id == group.id
    [(device_id, address, text)] = channel.sent
    assert device_id == tenant["device"].id
    assert address == GROUP_JID
    assert "Provider Group: Providers" in text
    assert "Panel: MP" in text
    assert "Timestamp: 19.10.2026 14:30:05" in text


async def test_send_test_message_to_direct_number(service, channel, tenant, make_group):
    group = await make_group(tenant, group_type="DIRECT", group_id="6281199@c.us")

    result = await service.send_test_message(group, "MP", tenant["user"].id)

    assert result.target == "6281199@s.whatsapp.net"
    assert channel.sent[0][1] == "6281199@s.whatsapp.net"


async def test_send_test_message_without_target(service, channel, tenant, make_group):
    group = await make_group(tenant, group_id=None)

    result = await service.send_test_message(group, None, tenant["user"].id)

    assert result.reason == ForwardReason.NO_TARGET
    assert channel.sent == []
