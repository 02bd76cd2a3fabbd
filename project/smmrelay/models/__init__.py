from smmrelay.models.user import User
from smmrelay.models.panel import Panel
from smmrelay.models.device import Device
from smmrelay.models.order import Order
from smmrelay.models.order_command import OrderCommand
from smmrelay.models.provider_group import ProviderGroup
from smmrelay.models.provider_config import ProviderConfig

__all__ = [
    "User",
    "Panel",
    "Device",
    "Order",
    "OrderCommand",
    "ProviderGroup",
    "ProviderConfig",
]
