# smmrelay/services/forwarding/resolver.py

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from smmrelay.models.order import Order
from smmrelay.models.provider_config import ProviderConfig
from smmrelay.models.provider_group import ProviderGroup
from smmrelay.schemas.forwarding import ForwardReason
from smmrelay.services.forwarding.store import ForwardingStore
from smmrelay.utils.log import Log

# имена ProviderConfig для ручных услуг (провайдер неизвестен)
MANUAL_PROVIDER_ALIASES = ["MANUAL", "manual", "default", "Default"]


class RoutingStage(str, Enum):
    SERVICE_ID = "service_id"
    PROVIDER = "provider"
    MANUAL_SERVICE = "manual_service"
    DEFAULT = "default"
    ANY_ACTIVE = "any_active"
    PROVIDER_CONFIG = "provider_config"


@dataclass
class ResolvedTarget:
    stage: RoutingStage
    rule: Optional[ProviderGroup] = None
    destination_override: Optional[str] = None      # из service_id_rules
    provider_config: Optional[ProviderConfig] = None

    @property
    def used_service_id_routing(self) -> bool:
        return self.destination_override is not None

    @property
    def destination(self) -> Optional[str]:
        if self.destination_override:
            return self.destination_override
        return self.rule.group_id if self.rule is not None else None


@dataclass
class NotFound:
    panel_name: str
    message: str
    reason: ForwardReason = ForwardReason.NO_GROUP


class DestinationResolver:
    """
    Выбирает, куда переслать команду по заказу.

    Порядок (первое совпадение выигрывает):
        1. правило по ID услуги (service_id_rules)
        2. группа конкретного провайдера
        3. группа ручных услуг, если провайдер неизвестен
        4. группа по умолчанию (provider_name = NULL)
        5. любая активная группа панели (с предупреждением)
        6. ProviderConfig пользователя (псевдонимы провайдеров)
    """

    def __init__(self, store: ForwardingStore, log: Log):
        self.store = store
        self.log = log

    async def resolve(
        self,
        order: Order,
        command: str,
        user_id: int,
        provider_order_id: str | None = None,
        provider_name: str | None = None,
    ) -> ResolvedTarget | NotFound:
        target = await self._resolve_rule(order, provider_order_id, provider_name)
        if target is not None:
            return target

        config = await self._find_provider_config(user_id, provider_name)
        if config is not None:
            await self.log.log_info("forwarding", "Найден ProviderConfig", {
                "order_id": order.id,
                "provider_name": provider_name or "MANUAL",
                "config_id": config.id,
            })
            return ResolvedTarget(stage=RoutingStage.PROVIDER_CONFIG, provider_config=config)

        panel_name = await self._panel_name(order)
        await self.log.log_warning("forwarding", "Группа провайдера не найдена", {
            "order_id": order.id,
            "panel": panel_name,
            "command": command,
        })
        return NotFound(
            panel_name=panel_name,
            message=(
                f'No provider group configured for panel "{panel_name}". '
                "Please set up a provider group in SMM Integration → Provider Groups."
            ),
        )

    async def _resolve_rule(self, order, provider_order_id, provider_name) -> ResolvedTarget | None:
        panel_id = order.panel_id

        # 1. правило по ID услуги
        if order.service_id:
            service_id = str(order.service_id)
            for rule in await self.store.find_routing_rules(panel_id, with_service_rules=True):
                destination = rule.service_id_rules.destination_for(service_id) if rule.service_id_rules else None
                if destination:
                    await self.log.log_info("forwarding", "Совпало правило по ID услуги", {
                        "service_id": service_id,
                        "group_id": rule.id,
                        "destination": destination,
                    })
                    return ResolvedTarget(
                        stage=RoutingStage.SERVICE_ID,
                        rule=rule,
                        destination_override=destination,
                    )

        # 2. группа провайдера
        if provider_name:
            rule = await self.store.find_first_routing_rule(panel_id, provider_name=provider_name)
            if rule is not None:
                await self.log.log_info("forwarding", f"Группа провайдера {provider_name}", {"group_id": rule.id})
                return ResolvedTarget(stage=RoutingStage.PROVIDER, rule=rule)

        # 3. ручная услуга: провайдер не известен вовсе
        if not provider_order_id and not provider_name:
            rule = await self.store.find_first_routing_rule(panel_id, manual_service=True)
            if rule is not None:
                await self.log.log_info("forwarding", "Группа ручных услуг (провайдер не определён)", {"group_id": rule.id})
                return ResolvedTarget(stage=RoutingStage.MANUAL_SERVICE, rule=rule)

        # 4. группа по умолчанию
        rule = await self.store.find_first_routing_rule(panel_id, provider_name=None, manual_service=False)
        if rule is not None:
            await self.log.log_info("forwarding", f'Группа по умолчанию (нет группы для "{provider_name}")', {"group_id": rule.id})
            return ResolvedTarget(stage=RoutingStage.DEFAULT, rule=rule)

        # 5. любая активная группа
        rule = await self.store.find_first_routing_rule(panel_id)
        if rule is not None:
            await self.log.log_warning(
                "forwarding",
                f'Используется запасная группа "{rule.group_name}", настройте группы провайдеров',
                {"group_id": rule.id, "panel_id": panel_id},
            )
            return ResolvedTarget(stage=RoutingStage.ANY_ACTIVE, rule=rule)

        return None

    async def _find_provider_config(self, user_id, provider_name) -> ProviderConfig | None:
        names = [provider_name] if provider_name else MANUAL_PROVIDER_ALIASES
        try:
            return await self.store.find_provider_config(user_id, names)
        except Exception as e:
            await self.log.log_warning("forwarding", f"Не удалось проверить ProviderConfig: {e}", {"user_id": user_id})
            return None

    async def _panel_name(self, order) -> str:
        panel = order.panel
        if panel is None and order.panel_id is not None:
            panel = await self.store.get_panel(order.panel_id)
        return panel.display_name if panel is not None else "Unknown"
