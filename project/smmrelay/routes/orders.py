# smmrelay/routes/orders.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status

from smmrelay.routes.auth import get_current_user
from smmrelay.schemas.order import Order, OrderCreate, OrderCommand, OrderCommandCreate
from smmrelay.services.order import (
    create_order_command_service,
    create_order_service,
    delete_order_service,
    read_order_commands_service,
    read_order_service,
    read_orders_service,
)

router = APIRouter()

# ────────────── CREATE ──────────────
@router.post(
    "/",
    response_model=Order,
    status_code=status.HTTP_201_CREATED,
    summary="Создать заказ",
    responses={
        201: {"description": "Заказ успешно создан"},
        401: {"description": "Некорректный пользователь или токен"},
        404: {"description": "Панель не найдена"},
        422: {"description": "Неверные данные запроса"},
    },
)
async def create_order(request: Request, order: OrderCreate, current_user=Depends(get_current_user)):
    try:
        return await create_order_service(order, current_user.id, request)
    except Exception as e:
        await request.app.state.log.log_error("order", f"Ошибка при создании заказа: {str(e)}")
        raise


# ────────────── READ ALL ──────────────
@router.get(
    "/",
    response_model=List[Order],
    summary="Получить список заказов",
    responses={401: {"description": "Некорректный пользователь или токен"}},
)
async def read_orders(
    request: Request,
    panel_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    current_user=Depends(get_current_user),
):
    return await read_orders_service(request, current_user.id, panel_id, skip, limit)


# ────────────── READ ONE ──────────────
@router.get(
    "/{id}",
    response_model=Order,
    summary="Получить заказ по ID",
    responses={404: {"description": "Заказ не найден"}},
)
async def read_order(id: int, request: Request, current_user=Depends(get_current_user)):
    return await read_order_service(id, current_user.id, request)


# ────────────── DELETE ──────────────
@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить заказ",
    responses={404: {"description": "Заказ не найден"}},
)
async def delete_order(id: int, request: Request, current_user=Depends(get_current_user)):
    try:
        await delete_order_service(id, current_user.id, request)
    except Exception as e:
        await request.app.state.log.log_error("order", f"Ошибка при удалении заказа: {str(e)}", {"id": id})
        raise


# ────────────── COMMANDS ──────────────
@router.post(
    "/{id}/commands",
    response_model=OrderCommand,
    status_code=status.HTTP_201_CREATED,
    summary="Записать команду по заказу",
    responses={404: {"description": "Заказ не найден"}},
)
async def create_order_command(id: int, body: OrderCommandCreate, request: Request, current_user=Depends(get_current_user)):
    return await create_order_command_service(id, body, current_user.id, request)


@router.get(
    "/{id}/commands",
    response_model=List[OrderCommand],
    summary="Журнал команд и пересылок по заказу",
    responses={404: {"description": "Заказ не найден"}},
)
async def read_order_commands(id: int, request: Request, current_user=Depends(get_current_user)):
    return await read_order_commands_service(id, current_user.id, request)
