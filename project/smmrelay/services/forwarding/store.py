# smmrelay/services/forwarding/store.py

from sqlalchemy import update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from smmrelay.models.device import Device, DEVICE_CONNECTED
from smmrelay.models.order import Order
from smmrelay.models.order_command import OrderCommand
from smmrelay.models.panel import Panel
from smmrelay.models.provider_config import ProviderConfig
from smmrelay.models.provider_group import ProviderGroup

# отличает "фильтр не задан" от "provider_name IS NULL"
ANY = object()


class ForwardingStore:
    """
    Доступ к БД для пересылки команд.
    Каждая операция открывает свою короткую сессию, поэтому объект можно
    создать один раз на всё приложение.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_order(self, order_id: int, user_id: int) -> Order | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Order).where(Order.id == order_id, Order.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_panel(self, panel_id: int) -> Panel | None:
        async with self.session_factory() as session:
            return await session.get(Panel, panel_id)

    async def find_routing_rules(
        self,
        panel_id: int,
        *,
        provider_name=ANY,
        manual_service: bool | None = None,
        with_service_rules: bool = False,
        limit: int | None = None,
    ) -> list[ProviderGroup]:
        """
        Активные группы панели в порядке создания (created_at, id).
        provider_name=None ищет группы без провайдера; ANY не фильтрует.
        """
        query = select(ProviderGroup).where(
            ProviderGroup.panel_id == panel_id,
            ProviderGroup.is_active.is_(True),
        )
        if provider_name is None:
            query = query.where(ProviderGroup.provider_name.is_(None))
        elif provider_name is not ANY:
            query = query.where(ProviderGroup.provider_name == provider_name)
        if manual_service is not None:
            query = query.where(ProviderGroup.is_manual_service_group.is_(manual_service))
        if with_service_rules:
            query = query.where(ProviderGroup.service_id_rules.is_not(None))

        query = query.order_by(ProviderGroup.created_at, ProviderGroup.id)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def find_first_routing_rule(self, panel_id: int, **filters) -> ProviderGroup | None:
        rules = await self.find_routing_rules(panel_id, limit=1, **filters)
        return rules[0] if rules else None

    async def find_provider_config(self, user_id: int, provider_names: list[str]) -> ProviderConfig | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ProviderConfig)
                .where(
                    ProviderConfig.user_id == user_id,
                    ProviderConfig.provider_name.in_(provider_names),
                    ProviderConfig.is_active.is_(True),
                )
                .order_by(ProviderConfig.priority, ProviderConfig.created_at, ProviderConfig.id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_provider_alias(self, user_id: int, provider_name: str | None) -> str | None:
        if not provider_name:
            return None
        async with self.session_factory() as session:
            result = await session.execute(
                select(ProviderConfig.alias)
                .where(
                    ProviderConfig.user_id == user_id,
                    ProviderConfig.provider_name == provider_name,
                    ProviderConfig.is_active.is_(True),
                )
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_connected_device(self, user_id: int) -> Device | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Device)
                .where(Device.user_id == user_id, Device.status == DEVICE_CONNECTED)
                .order_by(Device.created_at, Device.id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def update_command_record(
        self,
        order_id: int,
        command: str,
        status: str,
        forwarded_to: str | None,
        response: dict,
    ) -> int:
        """Обновляет (не создаёт) строки журнала команды; возвращает число строк."""
        async with self.session_factory() as session:
            result = await session.execute(
                update(OrderCommand)
                .where(
                    OrderCommand.order_id == order_id,
                    OrderCommand.command == command,
                    OrderCommand.status == status,
                )
                .values(forwarded_to=forwarded_to, response=response)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount
