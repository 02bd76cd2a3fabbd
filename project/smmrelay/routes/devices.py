# smmrelay/routes/devices.py

from typing import List

from fastapi import APIRouter, Depends, Request, status

from smmrelay.routes.auth import get_current_user
from smmrelay.schemas.device import Device, DeviceCreate, DeviceStatusUpdate
from smmrelay.services.device import (
    create_device_service,
    delete_device_service,
    read_device_service,
    read_devices_service,
    update_device_status_service,
)

router = APIRouter()


@router.post("/", response_model=Device, status_code=status.HTTP_201_CREATED, summary="Добавить устройство")
async def create_device(request: Request, device: DeviceCreate, current_user=Depends(get_current_user)):
    return await create_device_service(device, current_user.id, request)


@router.get("/", response_model=List[Device], summary="Список устройств")
async def read_devices(request: Request, current_user=Depends(get_current_user)):
    return await read_devices_service(request, current_user.id)


@router.get("/{id}", response_model=Device, summary="Устройство по ID", responses={404: {"description": "Устройство не найдено"}})
async def read_device(id: int, request: Request, current_user=Depends(get_current_user)):
    return await read_device_service(id, current_user.id, request)


@router.put("/{id}/status", response_model=Device, summary="Обновить статус подключения")
async def update_device_status(id: int, body: DeviceStatusUpdate, request: Request, current_user=Depends(get_current_user)):
    return await update_device_status_service(id, body.status, current_user.id, request)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, summary="Удалить устройство")
async def delete_device(id: int, request: Request, current_user=Depends(get_current_user)):
    await delete_device_service(id, current_user.id, request)
