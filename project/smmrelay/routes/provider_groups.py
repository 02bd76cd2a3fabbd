# smmrelay/routes/provider_groups.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from smmrelay.models.device import DEVICE_CONNECTED
from smmrelay.routes.auth import get_current_user
from smmrelay.schemas.forwarding import (
    BulkForwardRequest,
    BulkForwardResult,
    DirectMessageRequest,
    ForwardRequest,
    ForwardResult,
    GroupInfo,
)
from smmrelay.schemas.provider_group import (
    GroupTestRequest,
    ProviderGroup,
    ProviderGroupCreate,
    ProviderGroupUpdate,
)
from smmrelay.services.device import read_device_service
from smmrelay.services.panel import read_panel_service
from smmrelay.services.provider_group import (
    create_provider_group_service,
    delete_provider_group_service,
    read_provider_group_service,
    read_provider_groups_service,
    update_provider_group_service,
)

router = APIRouter()


# ────────────── LIST ──────────────
@router.get(
    "/",
    response_model=List[ProviderGroup],
    summary="Группы провайдеров пользователя",
    responses={401: {"description": "Некорректный пользователь или токен"}},
)
async def read_provider_groups(
    request: Request,
    panel_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    current_user=Depends(get_current_user),
):
    return await read_provider_groups_service(request, current_user.id, panel_id, skip, limit)


# ────────────── Именованные маршруты (до /{id}) ──────────────
@router.post(
    "/forward",
    response_model=ForwardResult,
    summary="Переслать команду по заказу в группу провайдера",
    responses={
        200: {"description": "Результат пересылки (success=false с reason при ошибке настройки)"},
        401: {"description": "Некорректный пользователь или токен"},
        422: {"description": "Неверные данные запроса"},
    },
)
async def forward_command(body: ForwardRequest, request: Request, current_user=Depends(get_current_user)):
    forwarding = request.app.state.forwarding
    result = await forwarding.forward_to_group(body.order_id, body.command, current_user.id, body.device_id)
    await request.app.state.log.log_info("provider_group", "Пересылка команды", {
        "order_id": body.order_id,
        "command": body.command.value,
        "success": result.success,
        "reason": result.reason.value if result.reason else None,
    })
    return result


@router.post(
    "/bulk-forward",
    response_model=BulkForwardResult,
    summary="Массовая пересылка команды по списку заказов",
)
async def bulk_forward_command(body: BulkForwardRequest, request: Request, current_user=Depends(get_current_user)):
    forwarding = request.app.state.forwarding
    return await forwarding.bulk_forward(body.order_ids, body.command, current_user.id, body.device_id)


@router.post(
    "/direct-message",
    response_model=ForwardResult,
    summary="Личное сообщение провайдеру",
    responses={404: {"description": "Устройство не найдено"}},
)
async def send_direct_message(body: DirectMessageRequest, request: Request, current_user=Depends(get_current_user)):
    await read_device_service(body.device_id, current_user.id, request)
    return await request.app.state.forwarding.send_direct_message(body.target_number, body.message, body.device_id)


@router.get(
    "/whatsapp-groups/{device_id}",
    response_model=List[GroupInfo],
    summary="Группы WhatsApp подключённого устройства",
    responses={
        400: {"description": "Устройство не подключено"},
        404: {"description": "Устройство не найдено"},
        502: {"description": "Шлюз WhatsApp недоступен"},
    },
)
async def read_whatsapp_groups(device_id: int, request: Request, current_user=Depends(get_current_user)):
    device = await read_device_service(device_id, current_user.id, request)
    if device.status != DEVICE_CONNECTED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Device is not connected")

    try:
        return await request.app.state.channel.list_groups(device.id)
    except Exception as e:
        await request.app.state.log.log_error("provider_group", f"Не удалось получить группы: {e}", {"device_id": device_id})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


# ────────────── READ ONE ──────────────
@router.get(
    "/{id}",
    response_model=ProviderGroup,
    summary="Группа провайдера по ID",
    responses={404: {"description": "Группа не найдена"}},
)
async def read_provider_group(id: int, request: Request, current_user=Depends(get_current_user)):
    return await read_provider_group_service(id, current_user.id, request)


# ────────────── CREATE ──────────────
@router.post(
    "/",
    response_model=ProviderGroup,
    status_code=status.HTTP_201_CREATED,
    summary="Создать группу провайдера",
    responses={
        404: {"description": "Панель или устройство не найдены"},
        422: {"description": "Не задан получатель"},
    },
)
async def create_provider_group(body: ProviderGroupCreate, request: Request, current_user=Depends(get_current_user)):
    try:
        return await create_provider_group_service(body, current_user.id, request)
    except Exception as e:
        await request.app.state.log.log_error("provider_group", f"Ошибка при создании группы: {str(e)}")
        raise


# ────────────── UPDATE ──────────────
@router.put(
    "/{id}",
    response_model=ProviderGroup,
    summary="Обновить группу провайдера",
    responses={404: {"description": "Группа или устройство не найдены"}},
)
async def update_provider_group(id: int, body: ProviderGroupUpdate, request: Request, current_user=Depends(get_current_user)):
    return await update_provider_group_service(id, body, current_user.id, request)


# ────────────── DELETE ──────────────
@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить группу провайдера",
    responses={404: {"description": "Группа не найдена"}},
)
async def delete_provider_group(id: int, request: Request, current_user=Depends(get_current_user)):
    await delete_provider_group_service(id, current_user.id, request)


# ────────────── TEST ──────────────
@router.post(
    "/{id}/test",
    response_model=ForwardResult,
    summary="Отправить тестовое сообщение в группу",
    responses={404: {"description": "Группа не найдена"}},
)
async def test_provider_group(
    id: int,
    request: Request,
    body: Optional[GroupTestRequest] = None,
    current_user=Depends(get_current_user),
):
    group = await read_provider_group_service(id, current_user.id, request)
    panel = await read_panel_service(group.panel_id, current_user.id, request)
    device_id = body.device_id if body else None
    return await request.app.state.forwarding.send_test_message(group, panel.alias, current_user.id, device_id)
