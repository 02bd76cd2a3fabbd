# smmrelay/services/forwarding/provider_config.py

from datetime import datetime
from typing import Callable

from smmrelay.models.provider_config import ProviderConfig
from smmrelay.schemas.forwarding import ForwardLogEntry, ForwardReason, ForwardResult
from smmrelay.services.channel import OutboundChannel, SendStatus, TelegramChannel
from smmrelay.services.forwarding.delivery import (
    GROUP_SUFFIX,
    direct_jid,
    record_forwarding,
    resolve_device,
    utcnow,
)
from smmrelay.services.forwarding.formatter import display_order_id, substitute
from smmrelay.services.forwarding.store import ForwardingStore
from smmrelay.utils.log import Log

# команда → (флаг разрешения, поле шаблона, название для сообщения)
COMMAND_SETTINGS = {
    "REFILL": ("forward_refill", "refill_template", "Refill"),
    "CANCEL": ("forward_cancel", "cancel_template", "Cancel"),
    "SPEED_UP": ("forward_speedup", "speedup_template", "Speedup"),
}

CONFIG_VERBS = {
    "REFILL": "refill",
    "CANCEL": "cancel",
    "SPEED_UP": "speed up",
    "NEW_ORDER": "new",
    "RE_REQUEST": "refill",
}


class ProviderConfigForwarder:
    """
    Резервный путь: пересылка по ProviderConfig (страница псевдонимов провайдеров),
    когда для панели не настроено ни одной группы провайдера.
    """

    def __init__(
        self,
        store: ForwardingStore,
        channel: OutboundChannel,
        log: Log,
        telegram: TelegramChannel | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.channel = channel
        self.telegram = telegram or TelegramChannel()
        self.log = log
        self.clock = clock

    def build_message(self, config: ProviderConfig, command: str, order, provider_order_id: str | None) -> str:
        command = command.upper()
        display_id = display_order_id(order, provider_order_id)

        options = COMMAND_SETTINGS.get(command)
        template = getattr(config, options[1]) if options else None
        if not template:
            return f"{display_id} {CONFIG_VERBS.get(command, command.lower())}"

        return substitute(template, {
            "externalId": display_id,
            "orderId": display_id,
            "command": command.lower(),
            "providerName": order.provider_name or "N/A",
            "providerAlias": config.alias or config.provider_name or "N/A",
        })

    async def deliver(
        self,
        config: ProviderConfig,
        command: str,
        order,
        provider_order_id: str | None,
        user_id: int,
        device_id: int | None = None,
    ) -> ForwardResult:
        command = command.upper()

        options = COMMAND_SETTINGS.get(command)
        if options and not getattr(config, options[0]):
            return ForwardResult.failure(
                ForwardReason.DISABLED,
                f"{options[2]} forwarding disabled for this provider",
                source="ProviderConfig",
            )

        group_jid = config.whatsapp_group_jid
        number = config.whatsapp_number
        telegram_chat = config.telegram_chat_id

        if not group_jid and not number and not telegram_chat:
            return ForwardResult.failure(
                ForwardReason.NO_DESTINATION,
                f'ProviderConfig for "{config.provider_name}" has no forwarding destination set.',
                source="ProviderConfig",
            )

        send_device_id = None
        if group_jid or number:
            send_device_id = await resolve_device(self.store, self.log, user_id, device_id, config.device_id)
            if not send_device_id:
                return ForwardResult.failure(
                    ForwardReason.NO_DEVICE,
                    "No WhatsApp device available for forwarding.",
                    source="ProviderConfig",
                )

        message = self.build_message(config, command, order, provider_order_id)
        forwarded_to: list[str] = []
        errors: list[str] = []
        attempted = 0

        if group_jid:
            attempted += 1
            address = group_jid if "@" in group_jid else f"{group_jid}{GROUP_SUFFIX}"
            try:
                await self.channel.send(send_device_id, address, message)
                forwarded_to.append(f"WA Group: {group_jid[:15]}...")
            except Exception as e:
                errors.append(f"WA Group failed: {e}")
                await self.log.log_error("forwarding", f"ProviderConfig: группа не приняла сообщение: {e}", {"config_id": config.id})

        if number:
            attempted += 1
            try:
                await self.channel.send(send_device_id, direct_jid(number), message)
                forwarded_to.append(f"WA Number: {number}")
            except Exception as e:
                errors.append(f"WA Number failed: {e}")
                await self.log.log_error("forwarding", f"ProviderConfig: номер не принял сообщение: {e}", {"config_id": config.id})

        if telegram_chat and self.telegram.send(telegram_chat, message) == SendStatus.UNSUPPORTED:
            await self.log.log_info("forwarding", "ProviderConfig: Telegram не поддерживается, пропущено", {"config_id": config.id})

        if attempted == 0:
            return ForwardResult.failure(
                ForwardReason.UNSUPPORTED,
                f'Telegram forwarding is not available for "{config.provider_name}"',
                source="ProviderConfig",
                group_name=config.alias or config.provider_name,
            )

        success = bool(forwarded_to)

        entry = ForwardLogEntry(
            forwarded=success,
            source="ProviderConfig",
            config_id=config.id,
            provider_name=config.provider_name,
            provider_alias=config.alias,
            provider_order_id=provider_order_id,
            destinations=forwarded_to,
            errors=errors or None,
            timestamp=self.clock(),
        )
        await record_forwarding(self.store, self.log, order.id, command, ", ".join(forwarded_to) or None, entry)

        if success:
            await self.log.log_info("forwarding", f"ProviderConfig: {command} переслан", {
                "config_id": config.id,
                "forwarded_to": forwarded_to,
                "errors": errors,
            })
            text = f"Forwarded to {', '.join(forwarded_to)} (via Provider Aliases)"
            if errors:
                text += f"; errors: {'; '.join(errors)}"
            return ForwardResult(
                success=True,
                message=text,
                source="ProviderConfig",
                group_name=config.alias or config.provider_name,
                forwarded_to=forwarded_to,
                errors=errors or None,
            )

        return ForwardResult.failure(
            ForwardReason.SEND_FAILED,
            f"Forward failed: {'; '.join(errors)}",
            source="ProviderConfig",
            group_name=config.alias or config.provider_name,
            forwarded_to=forwarded_to,
            errors=errors,
        )
