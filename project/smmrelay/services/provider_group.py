# smmrelay/services/provider_group.py

from sqlalchemy.future import select
from fastapi import HTTPException, Request

from smmrelay.models.panel import Panel as PanelModel
from smmrelay.models.provider_group import ProviderGroup as ProviderGroupModel
from smmrelay.models.types import ServiceIdRules
from smmrelay.schemas.provider_group import ProviderGroupCreate, ProviderGroupUpdate
from smmrelay.services.device import read_device_service
from smmrelay.services.panel import read_panel_service


def _owned_by(user_id: int):
    # у группы нет user_id: принадлежность проверяется через панель
    return ProviderGroupModel.panel_id.in_(select(PanelModel.id).where(PanelModel.user_id == user_id))


async def read_provider_groups_service(request: Request, user_id: int, panel_id: int | None = None, skip: int = 0, limit: int = 100) -> list[ProviderGroupModel]:
    db = request.state.db

    query = select(ProviderGroupModel).where(_owned_by(user_id))
    if panel_id is not None:
        query = query.where(ProviderGroupModel.panel_id == panel_id)

    result = await db.execute(
        query.order_by(ProviderGroupModel.created_at.desc(), ProviderGroupModel.id.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())


async def read_provider_group_service(id: int, user_id: int, request: Request) -> ProviderGroupModel:
    db = request.state.db
    result = await db.execute(
        select(ProviderGroupModel).where(ProviderGroupModel.id == id, _owned_by(user_id))
    )
    db_group = result.scalar_one_or_none()
    if db_group is None:
        await request.app.state.log.log_error("provider_group", "Группа провайдера не найдена", {"id": id})
        raise HTTPException(status_code=404, detail="Provider group not found")
    return db_group


async def create_provider_group_service(group: ProviderGroupCreate, user_id: int, request: Request) -> ProviderGroupModel:
    """
    Создание группы провайдера. Панель и устройство должны принадлежать пользователю.
    """
    db = request.state.db
    log = request.app.state.log

    await read_panel_service(group.panel_id, user_id, request)
    if group.device_id is not None:
        await read_device_service(group.device_id, user_id, request)

    data = group.model_dump()
    data["service_id_rules"] = ServiceIdRules(group.service_id_rules) if group.service_id_rules else None

    db_group = ProviderGroupModel(**data)
    db.add(db_group)
    await db.commit()
    await db.refresh(db_group)

    await log.log_info("provider_group", "Группа провайдера создана", {
        "id": db_group.id,
        "panel_id": db_group.panel_id,
        "provider_name": db_group.provider_name,
    })
    return db_group


async def update_provider_group_service(id: int, group_update: ProviderGroupUpdate, user_id: int, request: Request) -> ProviderGroupModel:
    db = request.state.db
    db_group = await read_provider_group_service(id, user_id, request)

    changes = group_update.model_dump(exclude_unset=True)
    if changes.get("device_id") and changes["device_id"] != db_group.device_id:
        await read_device_service(changes["device_id"], user_id, request)
    if "service_id_rules" in changes:
        changes["service_id_rules"] = ServiceIdRules(changes["service_id_rules"]) if changes["service_id_rules"] else None
    if "provider_name" in changes and changes["provider_name"] is not None and not changes["provider_name"].strip():
        changes["provider_name"] = None

    for key, value in changes.items():
        setattr(db_group, key, value)

    await db.commit()
    await db.refresh(db_group)
    await request.app.state.log.log_info("provider_group", "Группа провайдера обновлена", {"id": id, "fields": list(changes)})
    return db_group


async def delete_provider_group_service(id: int, user_id: int, request: Request) -> None:
    db = request.state.db
    db_group = await read_provider_group_service(id, user_id, request)
    await db.delete(db_group)
    await db.commit()
    await request.app.state.log.log_info("provider_group", "Группа провайдера удалена", {"id": id})
