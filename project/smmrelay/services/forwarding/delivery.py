# smmrelay/services/forwarding/delivery.py

import re
from datetime import datetime, timezone
from typing import Callable

from smmrelay.models.order_command import COMMAND_STATUS_SUCCESS
from smmrelay.schemas.forwarding import ForwardLogEntry, ForwardReason, ForwardResult
from smmrelay.services.channel import OutboundChannel
from smmrelay.services.forwarding.resolver import ResolvedTarget
from smmrelay.services.forwarding.store import ForwardingStore
from smmrelay.utils.log import Log

DIRECT_SUFFIX = "@s.whatsapp.net"
GROUP_SUFFIX = "@g.us"


def direct_jid(number: str) -> str:
    return f"{re.sub(r'[^0-9]', '', number)}{DIRECT_SUFFIX}"


def normalize_destination(destination: str) -> str:
    """Номер телефона без "@" превращается в личный JID, полный адрес не меняется."""
    if "@" in destination:
        return destination
    return direct_jid(destination)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def resolve_device(store: ForwardingStore, log: Log, user_id: int, *candidates) -> int | None:
    """Первый заданный device_id из candidates, иначе первое подключённое устройство."""
    for device_id in candidates:
        if device_id:
            return device_id
    try:
        device = await store.find_connected_device(user_id)
    except Exception as e:
        await log.log_warning("forwarding", f"Не удалось подобрать устройство: {e}", {"user_id": user_id})
        return None
    if device is None:
        return None
    await log.log_info("forwarding", "Устройство выбрано автоматически", {"device_id": device.id, "user_id": user_id})
    return device.id


async def record_forwarding(store: ForwardingStore, log: Log, order_id: int, command: str, forwarded_to, entry: ForwardLogEntry):
    """
    Записывает результат пересылки в строку журнала команды.
    Ошибка записи только логируется: результат отправки от неё не меняется.
    """
    try:
        updated = await store.update_command_record(
            order_id, command, COMMAND_STATUS_SUCCESS, forwarded_to, entry.to_record()
        )
    except Exception as e:
        await log.log_warning("forwarding", f"Не удалось записать пересылку в журнал: {e}", {
            "order_id": order_id,
            "command": command,
        })
        return 0
    return updated


class DeliveryLogger:
    """Отправляет сообщение в выбранную группу и фиксирует результат в OrderCommand."""

    def __init__(self, store: ForwardingStore, channel: OutboundChannel, log: Log, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.channel = channel
        self.log = log
        self.clock = clock

    async def deliver(
        self,
        order,
        command: str,
        target: ResolvedTarget,
        user_id: int,
        text: str,
        device_id: int | None = None,
        provider_order_id: str | None = None,
        provider_name: str | None = None,
    ) -> ForwardResult:
        command = command.upper()
        rule = target.rule

        send_device_id = await resolve_device(self.store, self.log, user_id, device_id, rule.device_id)
        if not send_device_id:
            return ForwardResult.failure(
                ForwardReason.NO_DEVICE,
                "No WhatsApp device configured. Please provide a device ID.",
            )

        destination = target.destination
        if not destination:
            return ForwardResult.failure(ForwardReason.NO_TARGET, "No target configured for provider group")

        address = normalize_destination(destination)
        service_id = str(order.service_id) if order.service_id else None

        try:
            await self.channel.send(send_device_id, address, text)
        except Exception as e:
            await self.log.log_error("forwarding", f"Ошибка отправки: {e}", {
                "order_id": order.id,
                "command": command,
                "target": address,
            })
            return ForwardResult.failure(ForwardReason.SEND_FAILED, str(e))

        entry = ForwardLogEntry(
            group_id=rule.id,
            group_name=rule.group_name,
            provider_name=provider_name,
            provider_order_id=provider_order_id,
            used_service_id_routing=target.used_service_id_routing,
            service_id=service_id,
            target_jid=address,
            timestamp=self.clock(),
        )
        await record_forwarding(self.store, self.log, order.id, command, rule.group_name, entry)

        routing_info = f" (via Service ID {service_id} routing)" if target.used_service_id_routing else ""
        await self.log.log_info("forwarding", f"{command} переслан в {rule.group_name}{routing_info}", {
            "order_id": order.id,
            "display_id": provider_order_id or order.external_order_id,
            "stage": target.stage.value,
        })

        return ForwardResult(
            success=True,
            message=f"Forwarded to {rule.group_name}",
            source="ProviderGroup",
            group_id=rule.id,
            group_name=rule.group_name,
            target=address,
            used_provider_order_id=bool(provider_order_id),
            used_service_id_routing=target.used_service_id_routing,
            service_id=service_id,
        )
