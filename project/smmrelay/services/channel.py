# smmrelay/services/channel.py

"""
Каналы исходящих сообщений.

WhatsAppGatewayChannel отправляет сообщения через HTTP API WhatsApp-шлюза,
к которому подключены устройства пользователей. Ошибка отправки всегда
выбрасывается наружу: решать, что с ней делать, должен вызывающий код.

TelegramChannel пока не реализован: пересылка в Telegram требует отдельной
интеграции с ботом, поэтому канал явно отвечает SendStatus.UNSUPPORTED.
"""

import asyncio
from enum import Enum
from typing import Protocol

import requests

from smmrelay.config import settings
from smmrelay.schemas.forwarding import GroupInfo


class SendStatus(str, Enum):
    UNSUPPORTED = "unsupported"


class OutboundChannel(Protocol):
    async def send(self, device_id: int, address: str, text: str) -> None: ...

    async def list_groups(self, device_id: int) -> list[GroupInfo]: ...


class ChannelError(Exception):
    """Шлюз ответил ошибкой или недоступен."""


class WhatsAppGatewayChannel:
    def __init__(self, base_url: str | None = None, token: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.WA_GATEWAY_URL).rstrip("/")
        self.token = settings.WA_GATEWAY_TOKEN if token is None else token
        self.timeout = settings.WA_GATEWAY_TIMEOUT if timeout is None else timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, payload: dict | None = None):
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise ChannelError(f"WhatsApp gateway unreachable: {e}") from e

        if resp.status_code >= 400:
            detail = resp.text[:200] if resp.text else resp.reason
            raise ChannelError(f"WhatsApp gateway error {resp.status_code}: {detail}")

        return resp.json() if resp.content else None

    async def send(self, device_id: int, address: str, text: str) -> None:
        # requests синхронный, поэтому запрос уходит в отдельный поток
        await asyncio.to_thread(
            self._request,
            "POST",
            f"/devices/{device_id}/messages",
            {"to": address, "text": text},
        )

    async def list_groups(self, device_id: int) -> list[GroupInfo]:
        data = await asyncio.to_thread(self._request, "GET", f"/devices/{device_id}/groups")
        return [GroupInfo.model_validate(item) for item in (data or [])]


class TelegramChannel:
    """Заглушка: отправка в Telegram не поддерживается и не считается ошибкой."""

    def send(self, chat_id: str, text: str) -> SendStatus:
        return SendStatus.UNSUPPORTED
