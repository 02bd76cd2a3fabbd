import os
import tempfile
from datetime import datetime, timezone

# настройки должны быть заданы до первого импорта smmrelay
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="smmrelay-log-"))
os.environ.setdefault("LOG_PRINT", "0")

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import smmrelay.models  # noqa: F401
from smmrelay.models import Device, Order, OrderCommand, Panel, ProviderConfig, ProviderGroup, User
from smmrelay.services.channel import ChannelError
from smmrelay.services.forwarding.service import GroupForwardingService
from smmrelay.services.forwarding.store import ForwardingStore
from smmrelay.utils.database import create_tables
from smmrelay.utils.log import Log

FIXED_NOW = datetime(2026, 10, 19, 14, 30, 5, tzinfo=timezone.utc)


class FakeChannel:
    """Записывает отправленные сообщения; адреса из fail_on отвечают ошибкой."""

    def __init__(self, fail_on=()):
        self.sent = []
        self.fail_on = set(fail_on)
        self.groups = []

    async def send(self, device_id, address, text):
        if address in self.fail_on:
            raise ChannelError(f"cannot reach {address}")
        self.sent.append((device_id, address, text))

    async def list_groups(self, device_id):
        return self.groups


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def log(tmp_path):
    log = Log(log_dir=str(tmp_path / "log"), log_print=False)
    yield log
    await log.shutdown()


@pytest.fixture
def store(session_factory):
    return ForwardingStore(session_factory)


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def service(store, channel, log):
    return GroupForwardingService(store, channel, log, clock=lambda: FIXED_NOW)


@pytest.fixture
def add(session_factory):
    """Сохраняет объекты одной транзакцией и возвращает их."""
    async def _add(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
            for obj in objects:
                await session.refresh(obj)
        return objects[0] if len(objects) == 1 else objects
    return _add


@pytest.fixture
async def tenant(add):
    """Пользователь с панелью и подключённым устройством."""
    user = await add(User(login="owner", name="Owner"))
    panel = await add(Panel(user_id=user.id, name="Main Panel", alias="MP"))
    device = await add(Device(user_id=user.id, name="Phone", status="connected"))
    return {"user": user, "panel": panel, "device": device}


@pytest.fixture
def make_order(add, store):
    async def _make(tenant, **fields):
        fields.setdefault("external_order_id", "1001")
        order = await add(Order(user_id=tenant["user"].id, panel_id=tenant["panel"].id, **fields))
        # перечитываем через store, чтобы панель была загружена
        return await store.get_order(order.id, tenant["user"].id)
    return _make


@pytest.fixture
def make_group(add):
    async def _make(tenant, **fields):
        fields.setdefault("group_name", "Providers")
        fields.setdefault("group_id", "120363000000000001@g.us")
        return await add(ProviderGroup(panel_id=tenant["panel"].id, **fields))
    return _make


@pytest.fixture
def make_config(add):
    async def _make(tenant, **fields):
        return await add(ProviderConfig(user_id=tenant["user"].id, **fields))
    return _make


@pytest.fixture
def make_command(add):
    async def _make(order, command="REFILL", status="SUCCESS"):
        return await add(OrderCommand(order_id=order.id, command=command, status=status))
    return _make
