# smmrelay/routes/panels.py

from typing import List

from fastapi import APIRouter, Depends, Request, status

from smmrelay.routes.auth import get_current_user
from smmrelay.schemas.panel import Panel, PanelCreate
from smmrelay.services.panel import (
    create_panel_service,
    delete_panel_service,
    read_panel_service,
    read_panels_service,
)

router = APIRouter()


@router.post(
    "/",
    response_model=Panel,
    status_code=status.HTTP_201_CREATED,
    summary="Добавить панель",
    responses={401: {"description": "Некорректный пользователь или токен"}},
)
async def create_panel(request: Request, panel: PanelCreate, current_user=Depends(get_current_user)):
    return await create_panel_service(panel, current_user.id, request)


@router.get("/", response_model=List[Panel], summary="Список панелей")
async def read_panels(request: Request, current_user=Depends(get_current_user)):
    return await read_panels_service(request, current_user.id)


@router.get(
    "/{id}",
    response_model=Panel,
    summary="Панель по ID",
    responses={404: {"description": "Панель не найдена"}},
)
async def read_panel(id: int, request: Request, current_user=Depends(get_current_user)):
    return await read_panel_service(id, current_user.id, request)


@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить панель",
    responses={404: {"description": "Панель не найдена"}},
)
async def delete_panel(id: int, request: Request, current_user=Depends(get_current_user)):
    await delete_panel_service(id, current_user.id, request)
