# smmrelay/services/device.py

from sqlalchemy.future import select
from fastapi import HTTPException, Request

from smmrelay.models.device import Device as DeviceModel
from smmrelay.schemas.device import DeviceCreate


async def read_devices_service(request: Request, user_id: int) -> list[DeviceModel]:
    db = request.state.db
    result = await db.execute(
        select(DeviceModel).where(DeviceModel.user_id == user_id).order_by(DeviceModel.id)
    )
    return list(result.scalars().all())


async def read_device_service(id: int, user_id: int, request: Request) -> DeviceModel:
    db = request.state.db
    result = await db.execute(
        select(DeviceModel).where(DeviceModel.id == id, DeviceModel.user_id == user_id)
    )
    db_device = result.scalar_one_or_none()
    if db_device is None:
        await request.app.state.log.log_error("device", "Устройство не найдено", {"id": id})
        raise HTTPException(status_code=404, detail="Device not found")
    return db_device


async def create_device_service(device: DeviceCreate, user_id: int, request: Request) -> DeviceModel:
    db = request.state.db
    db_device = DeviceModel(user_id=user_id, **device.model_dump())
    db.add(db_device)
    await db.commit()
    await db.refresh(db_device)
    await request.app.state.log.log_info("device", "Устройство добавлено", {"id": db_device.id})
    return db_device


async def update_device_status_service(id: int, status: str, user_id: int, request: Request) -> DeviceModel:
    db = request.state.db
    db_device = await read_device_service(id, user_id, request)
    db_device.status = status
    await db.commit()
    await db.refresh(db_device)
    await request.app.state.log.log_info("device", "Статус устройства обновлён", {"id": id, "status": status})
    return db_device


async def delete_device_service(id: int, user_id: int, request: Request) -> None:
    db = request.state.db
    db_device = await read_device_service(id, user_id, request)
    await db.delete(db_device)
    await db.commit()
    await request.app.state.log.log_info("device", "Устройство удалено", {"id": id})
