# smmrelay/services/order.py

from sqlalchemy.future import select
from fastapi import HTTPException, Request

from smmrelay.models.order import Order as OrderModel
from smmrelay.models.order_command import OrderCommand as OrderCommandModel
from smmrelay.schemas.order import OrderCreate, OrderCommandCreate
from smmrelay.services.panel import read_panel_service


async def read_orders_service(request: Request, user_id: int, panel_id: int | None = None, skip: int = 0, limit: int = 100) -> list[OrderModel]:
    """
    Получение списка заказов пользователя
    """
    db = request.state.db
    log = request.app.state.log

    query = select(OrderModel).where(OrderModel.user_id == user_id)
    if panel_id is not None:
        query = query.where(OrderModel.panel_id == panel_id)

    result = await db.execute(query.order_by(OrderModel.id).offset(skip).limit(limit))
    orders = list(result.scalars().all())

    await log.log_info("order", f"{len(orders)} заказов загружено", {"user_id": user_id})
    return orders


async def create_order_service(order: OrderCreate, user_id: int, request: Request) -> OrderModel:
    """
    Создание заказа (импорт с панели).
    """
    db = request.state.db
    log = request.app.state.log

    await read_panel_service(order.panel_id, user_id, request)

    db_order = OrderModel(user_id=user_id, **order.model_dump())
    db.add(db_order)
    await db.commit()
    await db.refresh(db_order)

    await log.log_info("order", "Заказ создан", {"id": db_order.id, "external_order_id": db_order.external_order_id})
    return db_order


async def read_order_service(id: int, user_id: int, request: Request) -> OrderModel:
    """
    Чтение заказа по ID.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(
        select(OrderModel).where(OrderModel.id == id, OrderModel.user_id == user_id)
    )
    db_order = result.scalar_one_or_none()
    if db_order is None:
        await log.log_error("order", "Заказ не найден", {"id": id})
        raise HTTPException(status_code=404, detail="Order not found")

    return db_order


async def delete_order_service(id: int, user_id: int, request: Request) -> None:
    """
    Удаление заказа по ID.
    """
    db = request.state.db
    db_order = await read_order_service(id, user_id, request)

    await db.delete(db_order)
    await db.commit()
    await request.app.state.log.log_info("order", "Заказ удалён", {"id": id})


# ────────────── Журнал команд ──────────────
async def create_order_command_service(order_id: int, command: OrderCommandCreate, user_id: int, request: Request) -> OrderCommandModel:
    """
    Фиксирует выполненную команду по заказу. Пересылка потом обновляет
    эту строку, а не создаёт новую.
    """
    db = request.state.db
    await read_order_service(order_id, user_id, request)

    db_command = OrderCommandModel(
        order_id=order_id,
        command=command.command.value,
        status=command.status.upper(),
    )
    db.add(db_command)
    await db.commit()
    await db.refresh(db_command)

    await request.app.state.log.log_info("order", "Команда записана", {"order_id": order_id, "command": db_command.command})
    return db_command


async def read_order_commands_service(order_id: int, user_id: int, request: Request) -> list[OrderCommandModel]:
    db = request.state.db
    await read_order_service(order_id, user_id, request)

    result = await db.execute(
        select(OrderCommandModel)
        .where(OrderCommandModel.order_id == order_id)
        .order_by(OrderCommandModel.id)
    )
    return list(result.scalars().all())
