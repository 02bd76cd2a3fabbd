# smmrelay/services/forwarding/formatter.py

import re
from datetime import datetime
from typing import Callable

SIMPLE_VERBS = {
    "NEW_ORDER": "new",
    "REFILL": "refill",
    "CANCEL": "cancel",
    "SPEED_UP": "speed up",
}

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

DATE_FORMAT = "%d.%m.%Y"
TIME_FORMAT = "%H:%M:%S"

# ────────────── Шаблоны по умолчанию ──────────────
DEFAULT_TEMPLATES = {
    "NEW_ORDER": """📦 *NEW ORDER RECEIVED*

External ID: {orderDisplayId}
🏷️ Panel: {panelAlias}
🔗 Provider: {providerName}

━━━━━━━━━━━━━━━
📋 *Order Details*
Service: {serviceName}
Service ID: {serviceId}
Link: {link}
Quantity: {quantity}

👤 Customer: {customerUsername}
📅 Placed: {timestamp}

✅ Action: New Order""",

    "REFILL": """🔄 *REFILL REQUEST*

📦 Order: {orderDisplayId}
🏷️ Panel: {panelAlias}
🔗 Provider: {providerName}

━━━━━━━━━━━━━━━
📋 *Service Details*
Service: {serviceName}
Link: {link}

📊 *Progress*
Qty: {quantity}
Delivered: {delivered}
Remains: {remains}

👤 Customer: {customerUsername}
📅 Requested: {timestamp}""",

    "CANCEL": """❌ *CANCEL REQUEST*

📦 Order: {orderDisplayId}
🏷️ Panel: {panelAlias}
🔗 Provider: {providerName}

━━━━━━━━━━━━━━━
📋 *Service Details*
Service: {serviceName}
Link: {link}
Status: {status}

📊 *Progress*
Qty: {quantity}
Delivered: {delivered}
Remains: {remains}

💰 Charge: {charge}
👤 Customer: {customerUsername}
📅 Requested: {timestamp}""",

    "SPEED_UP": """⚡ *SPEED-UP REQUEST*

📦 Order: {orderDisplayId}
🏷️ Panel: {panelAlias}
🔗 Provider: {providerName}

━━━━━━━━━━━━━━━
📋 *Service Details*
Service: {serviceName}
Link: {link}
Status: {status}

📊 *Progress*
Qty: {quantity}
Start: {startCount}
Delivered: {delivered}
Remains: {remains}

👤 Customer: {customerUsername}
📅 Requested: {timestamp}

⚠️ Please prioritize this order.""",
}

# поле ProviderGroup с шаблоном конкретной команды
RULE_TEMPLATE_FIELDS = {
    "NEW_ORDER": "new_order_template",
    "REFILL": "refill_template",
    "CANCEL": "cancel_template",
    "SPEED_UP": "speed_up_template",
}


def display_order_id(order, provider_order_id: str | None = None) -> str:
    """ID заказа, понятный провайдеру: его собственный ID важнее ID панели."""
    return provider_order_id or order.provider_order_id or order.external_order_id or "N/A"


def simple_verb(command: str) -> str:
    return SIMPLE_VERBS.get(command.upper(), command.lower())


def substitute(template: str, values: dict) -> str:
    """
    Подстановка {переменных} без учёта регистра, за один проход.
    Неизвестные переменные остаются в тексте как есть.
    """
    lookup = {key.lower(): value for key, value in values.items()}

    def replace(match):
        value = lookup.get(match.group(1).lower())
        return match.group(0) if value is None else value

    return PLACEHOLDER_RE.sub(replace, template)


def _text(value, default: str = "N/A") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _delivered(order) -> str:
    quantity, remains = order.quantity, order.remains
    if quantity is None or remains is None:
        return "N/A"
    try:
        return str(int(quantity) - int(remains))
    except (TypeError, ValueError):
        return "N/A"


def _flag(value, yes: str, no: str) -> str:
    return f"✅ {yes}" if value else f"❌ {no}"


class TemplateFormatter:
    """
    Текст сообщения для группы провайдера.

    Два режима:
        - простой ("7416281 refill"), если у группы включён use_simple_format
        - шаблон с подстановкой переменных заказа
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def format(
        self,
        command: str,
        order,
        rule,
        provider_order_id: str | None = None,
        provider_alias: str | None = None,
    ) -> str:
        command = command.upper()
        display_id = display_order_id(order, provider_order_id)

        if rule.use_simple_format:
            return f"{display_id} {simple_verb(command)}"

        template = self.select_template(command, rule)
        return substitute(template, self.variables(command, order, display_id, provider_order_id, provider_alias))

    @staticmethod
    def select_template(command: str, rule) -> str:
        # общий шаблон группы > шаблон команды > встроенный шаблон
        if command not in RULE_TEMPLATE_FIELDS:
            command = "REFILL"
        return (
            rule.message_template
            or getattr(rule, RULE_TEMPLATE_FIELDS[command])
            or DEFAULT_TEMPLATES[command]
        )

    def variables(self, command, order, display_id, provider_order_id=None, provider_alias=None) -> dict:
        now = self.clock()
        panel = order.panel
        can_refill = bool(order.can_refill)
        guarantee = order.has_guarantee if order.has_guarantee is not None else can_refill

        return {
            # провайдер
            "providerOrderId": _text(provider_order_id or order.provider_order_id),
            "providerName": _text(order.provider_name),
            "providerAlias": _text(provider_alias or order.provider_name),
            "orderDisplayId": display_id,
            "orderId": display_id,
            # панель
            "externalOrderId": _text(order.external_order_id),
            "externalId": _text(order.external_order_id),
            "panelOrderId": _text(order.external_order_id),
            "panelAlias": _text(panel.alias if panel is not None else None),
            "panelName": _text(panel.name if panel is not None else None),
            "command": command.lower(),
            # заказ
            "serviceName": _text(order.service_name or order.service_id),
            "serviceId": _text(order.service_id),
            "link": _text(order.link),
            "quantity": _text(order.quantity),
            "status": _text(order.status),
            "charge": f"${order.charge:.2f}" if order.charge else "N/A",
            "startCount": _text(order.start_count),
            "remains": _text(order.remains, default="0"),
            "delivered": _delivered(order),
            # клиент
            "customerUsername": _text(order.customer_username),
            "customerEmail": _text(order.customer_email),
            "customerPhone": _text(order.customer_phone),
            # возможности
            "canRefill": _flag(can_refill, "Yes", "No"),
            "canCancel": _flag(order.can_cancel, "Yes", "No"),
            "guarantee": _flag(guarantee, "Available", "None"),
            # время
            "timestamp": f"{now:{DATE_FORMAT} {TIME_FORMAT}}",
            "date": f"{now:{DATE_FORMAT}}",
            "time": f"{now:{TIME_FORMAT}}",
            "orderDate": f"{order.created_at:{DATE_FORMAT}}" if order.created_at else "N/A",
        }
