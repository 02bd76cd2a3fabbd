# smmrelay/routes/provider_config.py

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from smmrelay.routes.auth import get_current_user
from smmrelay.schemas.forwarding import ForwardReason, ForwardResult
from smmrelay.schemas.provider_config import (
    ConfigTestRequest,
    ManualDestination,
    ProviderConfig,
    ProviderConfigCreate,
    ProviderConfigUpdate,
)
from smmrelay.services.channel import SendStatus
from smmrelay.services.forwarding.delivery import GROUP_SUFFIX, direct_jid, resolve_device
from smmrelay.services.provider_config import (
    create_provider_config_service,
    delete_provider_config_service,
    read_manual_destination_service,
    read_provider_config_service,
    read_provider_configs_service,
    save_manual_destination_service,
    update_provider_config_service,
)

router = APIRouter()


@router.get("/", response_model=List[ProviderConfig], summary="Псевдонимы провайдеров пользователя")
async def read_provider_configs(request: Request, current_user=Depends(get_current_user)):
    return await read_provider_configs_service(request, current_user.id)


# ────────────── Ручные услуги (до /{id}) ──────────────
@router.get(
    "/manual-destination",
    response_model=Optional[ProviderConfig],
    summary="Получатель команд по заказам без провайдера",
)
async def read_manual_destination(request: Request, current_user=Depends(get_current_user)):
    return await read_manual_destination_service(request, current_user.id)


@router.post(
    "/manual-destination",
    response_model=ProviderConfig,
    summary="Сохранить получателя для ручных услуг",
    responses={404: {"description": "Устройство не найдено"}},
)
async def save_manual_destination(body: ManualDestination, request: Request, current_user=Depends(get_current_user)):
    return await save_manual_destination_service(body, current_user.id, request)


@router.get(
    "/{id}",
    response_model=ProviderConfig,
    summary="Псевдоним провайдера по ID",
    responses={404: {"description": "Настройка не найдена"}},
)
async def read_provider_config(id: int, request: Request, current_user=Depends(get_current_user)):
    return await read_provider_config_service(id, current_user.id, request)


@router.post(
    "/",
    response_model=ProviderConfig,
    status_code=status.HTTP_201_CREATED,
    summary="Создать псевдоним провайдера",
    responses={409: {"description": "Для провайдера уже есть настройка"}},
)
async def create_provider_config(body: ProviderConfigCreate, request: Request, current_user=Depends(get_current_user)):
    return await create_provider_config_service(body, current_user.id, request)


@router.put(
    "/{id}",
    response_model=ProviderConfig,
    summary="Обновить псевдоним провайдера",
    responses={404: {"description": "Настройка не найдена"}},
)
async def update_provider_config(id: int, body: ProviderConfigUpdate, request: Request, current_user=Depends(get_current_user)):
    return await update_provider_config_service(id, body, current_user.id, request)


@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить псевдоним провайдера",
    responses={404: {"description": "Настройка не найдена"}},
)
async def delete_provider_config(id: int, request: Request, current_user=Depends(get_current_user)):
    await delete_provider_config_service(id, current_user.id, request)


# ────────────── TEST ──────────────
@router.post(
    "/{id}/test",
    response_model=ForwardResult,
    summary="Тестовая отправка на получателя из настройки",
    responses={
        400: {"description": "Получатель для платформы не задан"},
        404: {"description": "Настройка не найдена"},
    },
)
async def test_provider_config(id: int, body: ConfigTestRequest, request: Request, current_user=Depends(get_current_user)):
    config = await read_provider_config_service(id, current_user.id, request)
    log = request.app.state.log

    destination = {
        "whatsapp_group": config.whatsapp_group_jid,
        "whatsapp_number": config.whatsapp_number,
        "telegram": config.telegram_chat_id,
    }[body.platform]
    if not destination:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"No {body.platform} destination configured")

    text = (
        "🧪 *Test Message*\n\n"
        "This is a test from SMM Relay.\n"
        f"Provider: {config.provider_name}\n"
        f"Time: {datetime.now():%d.%m.%Y %H:%M:%S}"
    )

    if body.platform == "telegram":
        forwarding = request.app.state.forwarding
        if forwarding.provider_config.telegram.send(destination, text) == SendStatus.UNSUPPORTED:
            return ForwardResult.failure(ForwardReason.UNSUPPORTED, "Telegram forwarding is not available")
        return ForwardResult(success=True, message="Test message sent", target=destination)

    forwarding = request.app.state.forwarding
    device_id = await resolve_device(forwarding.store, log, current_user.id, body.device_id, config.device_id)
    if not device_id:
        return ForwardResult.failure(ForwardReason.NO_DEVICE, "No WhatsApp device available for forwarding.")

    if body.platform == "whatsapp_group":
        address = destination if "@" in destination else f"{destination}{GROUP_SUFFIX}"
    else:
        address = direct_jid(destination)

    try:
        await request.app.state.channel.send(device_id, address, text)
    except Exception as e:
        await log.log_error("provider_config", f"Тестовое сообщение не отправлено: {e}", {"config_id": id})
        return ForwardResult.failure(ForwardReason.SEND_FAILED, str(e))

    return ForwardResult(success=True, message="Test message sent", target=address)
