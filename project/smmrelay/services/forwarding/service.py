# smmrelay/services/forwarding/service.py

from datetime import datetime

from smmrelay.models.order import Order
from smmrelay.models.provider_group import GROUP_TYPE_DIRECT, ProviderGroup
from smmrelay.schemas.forwarding import (
    BulkForwardItem,
    BulkForwardResult,
    ForwardReason,
    ForwardResult,
)
from smmrelay.services.channel import OutboundChannel, TelegramChannel
from smmrelay.services.forwarding.delivery import (
    DeliveryLogger,
    direct_jid,
    normalize_destination,
    resolve_device,
    utcnow,
)
from smmrelay.services.forwarding.formatter import TemplateFormatter
from smmrelay.services.forwarding.provider_config import ProviderConfigForwarder
from smmrelay.services.forwarding.resolver import DestinationResolver, NotFound
from smmrelay.services.forwarding.store import ForwardingStore
from smmrelay.utils.log import Log


def normalize_command(command) -> str:
    """Command / строка → "REFILL", "SPEED_UP", ..."""
    return str(getattr(command, "value", command)).strip().upper()


class GroupForwardingService:
    """
    Пересылка команд по заказам (новый заказ, refill, cancel, speed-up)
    в группы провайдеров.

    Создаётся один раз при старте приложения; хранилище, канал и лог
    передаются в конструктор и дальше не меняются.
    """

    def __init__(
        self,
        store: ForwardingStore,
        channel: OutboundChannel,
        log: Log,
        telegram: TelegramChannel | None = None,
        formatter: TemplateFormatter | None = None,
        clock=utcnow,
    ):
        self.store = store
        self.channel = channel
        self.log = log
        self.resolver = DestinationResolver(store, log)
        self.formatter = formatter or TemplateFormatter()
        self.delivery = DeliveryLogger(store, channel, log, clock=clock)
        self.provider_config = ProviderConfigForwarder(store, channel, log, telegram=telegram, clock=clock)

    async def forward_to_group(self, order_id: int, command, user_id: int, device_id: int | None = None) -> ForwardResult:
        """Пересылка по ID заказа с данными провайдера, сохранёнными в заказе."""
        try:
            order = await self.store.get_order(order_id, user_id)
        except Exception as e:
            await self.log.log_error("forwarding", f"Не удалось загрузить заказ: {e}", {"order_id": order_id})
            return ForwardResult.failure(ForwardReason.SEND_FAILED, str(e))
        if order is None:
            return ForwardResult.failure(ForwardReason.NO_ORDER, "Order not found")

        return await self.forward_to_provider(
            order,
            command,
            user_id,
            provider_order_id=order.provider_order_id,
            provider_name=order.provider_name,
            device_id=device_id,
        )

    async def forward_new_order(self, order: Order | None, user_id: int, device_id: int | None = None) -> ForwardResult:
        """
        Пересылка нового заказа. Заказ без данных провайдера
        (ещё не отправлен провайдеру) не пересылается.
        """
        if order is None:
            return ForwardResult.failure(ForwardReason.NO_ORDER, "Order object is required")

        if not order.provider_order_id and not order.provider_name:
            await self.log.log_info("forwarding", "NEW_ORDER пропущен: нет данных провайдера", {
                "external_order_id": order.external_order_id,
            })
            return ForwardResult.failure(ForwardReason.NO_PROVIDER, "No provider info available")

        return await self.forward_to_provider(
            order,
            "NEW_ORDER",
            user_id,
            provider_order_id=order.provider_order_id,
            provider_name=order.provider_name,
            device_id=device_id,
        )

    async def forward_to_provider(
        self,
        order: Order,
        command,
        user_id: int,
        provider_order_id: str | None = None,
        provider_name: str | None = None,
        device_id: int | None = None,
    ) -> ForwardResult:
        """Ошибки хранилища не выходят наружу: вызывающий получает send_failed."""
        command = normalize_command(command)
        try:
            return await self._forward(order, command, user_id, provider_order_id, provider_name, device_id)
        except Exception as e:
            await self.log.log_error("forwarding", f"Ошибка пересылки: {e}", {
                "order_id": order.id,
                "command": command,
            })
            return ForwardResult.failure(ForwardReason.SEND_FAILED, str(e))

    async def _forward(self, order, command, user_id, provider_order_id, provider_name, device_id) -> ForwardResult:
        target = await self.resolver.resolve(
            order,
            command,
            user_id,
            provider_order_id=provider_order_id,
            provider_name=provider_name,
        )

        if isinstance(target, NotFound):
            return ForwardResult.failure(target.reason, target.message, panel_name=target.panel_name)

        if target.provider_config is not None:
            return await self.provider_config.deliver(
                target.provider_config, command, order, provider_order_id, user_id, device_id
            )

        provider_alias = None
        if not target.rule.use_simple_format:
            provider_alias = await self._provider_alias(user_id, provider_name or order.provider_name)

        text = self.formatter.format(
            command,
            order,
            target.rule,
            provider_order_id=provider_order_id,
            provider_alias=provider_alias,
        )

        return await self.delivery.deliver(
            order,
            command,
            target,
            user_id,
            text,
            device_id=device_id,
            provider_order_id=provider_order_id,
            provider_name=provider_name,
        )

    async def bulk_forward(self, order_ids: list[int], command, user_id: int, device_id: int | None = None) -> BulkForwardResult:
        """Заказы обрабатываются по очереди; ошибка одного не прерывает остальные."""
        results = []

        for order_id in order_ids:
            try:
                result = await self.forward_to_group(order_id, command, user_id, device_id)
                item = BulkForwardItem(order_id=order_id, **result.model_dump())
            except Exception as e:
                await self.log.log_error("forwarding", f"Ошибка массовой пересылки: {e}", {"order_id": order_id})
                item = BulkForwardItem(order_id=order_id, success=False, reason=ForwardReason.ERROR, message=str(e))
            results.append(item)

        successful = sum(1 for r in results if r.success)
        return BulkForwardResult(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=results,
        )

    async def send_direct_message(self, target_number: str, message: str, device_id: int) -> ForwardResult:
        address = direct_jid(target_number)
        try:
            await self.channel.send(device_id, address, message)
        except Exception as e:
            await self.log.log_error("forwarding", f"Личное сообщение не отправлено: {e}", {"target": address})
            return ForwardResult.failure(ForwardReason.SEND_FAILED, str(e))
        return ForwardResult(success=True, message=f"Message sent to {target_number}", target=address)

    async def send_test_message(self, rule: ProviderGroup, panel_alias: str | None, user_id: int, device_id: int | None = None, now: datetime | None = None) -> ForwardResult:
        """Тестовое сообщение в группу провайдера."""
        send_device_id = await resolve_device(self.store, self.log, user_id, device_id, rule.device_id)
        if not send_device_id:
            return ForwardResult.failure(ForwardReason.NO_DEVICE, "No WhatsApp device linked to this group")

        if not rule.group_id:
            return ForwardResult.failure(ForwardReason.NO_TARGET, "No target configured for provider group")

        now = now or datetime.now()
        text = (
            "🧪 *TEST MESSAGE*\n\n"
            "This is a test message from SMM Relay.\n"
            f"Provider Group: {rule.group_name}\n"
            f"Panel: {panel_alias or 'N/A'}\n\n"
            f"Timestamp: {now:%d.%m.%Y %H:%M:%S}"
        )

        # DIRECT: group_id хранит номер телефона
        if rule.group_type == GROUP_TYPE_DIRECT:
            address = direct_jid(rule.group_id)
        else:
            address = normalize_destination(rule.group_id)

        try:
            await self.channel.send(send_device_id, address, text)
        except Exception as e:
            await self.log.log_error("forwarding", f"Тестовое сообщение не отправлено: {e}", {"group_id": rule.id})
            return ForwardResult.failure(ForwardReason.SEND_FAILED, str(e))

        return ForwardResult(
            success=True,
            message="Test message sent successfully",
            group_id=rule.id,
            group_name=rule.group_name,
            target=address,
        )

    async def _provider_alias(self, user_id: int, provider_name: str | None) -> str | None:
        try:
            return await self.store.find_provider_alias(user_id, provider_name)
        except Exception as e:
            await self.log.log_warning("forwarding", f"Не удалось получить псевдоним провайдера: {e}", {"provider_name": provider_name})
            return None
