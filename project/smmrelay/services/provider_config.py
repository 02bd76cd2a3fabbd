# smmrelay/services/provider_config.py

from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, Request

from smmrelay.models.provider_config import ProviderConfig as ProviderConfigModel, MANUAL_PROVIDER_NAME
from smmrelay.schemas.provider_config import ProviderConfigCreate, ProviderConfigUpdate, ManualDestination
from smmrelay.services.device import read_device_service


async def read_provider_configs_service(request: Request, user_id: int) -> list[ProviderConfigModel]:
    db = request.state.db
    result = await db.execute(
        select(ProviderConfigModel)
        .where(ProviderConfigModel.user_id == user_id)
        .order_by(ProviderConfigModel.priority, ProviderConfigModel.provider_name)
    )
    return list(result.scalars().all())


async def read_provider_config_service(id: int, user_id: int, request: Request) -> ProviderConfigModel:
    db = request.state.db
    result = await db.execute(
        select(ProviderConfigModel).where(ProviderConfigModel.id == id, ProviderConfigModel.user_id == user_id)
    )
    db_config = result.scalar_one_or_none()
    if db_config is None:
        await request.app.state.log.log_error("provider_config", "Настройка провайдера не найдена", {"id": id})
        raise HTTPException(status_code=404, detail="Provider configuration not found")
    return db_config


async def create_provider_config_service(config: ProviderConfigCreate, user_id: int, request: Request) -> ProviderConfigModel:
    db = request.state.db
    if config.device_id is not None:
        await read_device_service(config.device_id, user_id, request)

    db_config = ProviderConfigModel(user_id=user_id, **config.model_dump())
    db.add(db_config)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail=f"Configuration for provider '{config.provider_name}' already exists"
        )
    await db.refresh(db_config)

    await request.app.state.log.log_info("provider_config", "Настройка провайдера создана", {
        "id": db_config.id,
        "provider_name": db_config.provider_name,
    })
    return db_config


async def update_provider_config_service(id: int, config_update: ProviderConfigUpdate, user_id: int, request: Request) -> ProviderConfigModel:
    db = request.state.db
    db_config = await read_provider_config_service(id, user_id, request)

    changes = config_update.model_dump(exclude_unset=True)
    if changes.get("device_id"):
        await read_device_service(changes["device_id"], user_id, request)

    for key, value in changes.items():
        setattr(db_config, key, value)

    await db.commit()
    await db.refresh(db_config)
    await request.app.state.log.log_info("provider_config", "Настройка провайдера обновлена", {"id": id, "fields": list(changes)})
    return db_config


async def delete_provider_config_service(id: int, user_id: int, request: Request) -> None:
    db = request.state.db
    db_config = await read_provider_config_service(id, user_id, request)
    await db.delete(db_config)
    await db.commit()
    await request.app.state.log.log_info("provider_config", "Настройка провайдера удалена", {"id": id})


# ────────────── Получатель для ручных услуг ──────────────
async def read_manual_destination_service(request: Request, user_id: int) -> ProviderConfigModel | None:
    db = request.state.db
    result = await db.execute(
        select(ProviderConfigModel).where(
            ProviderConfigModel.user_id == user_id,
            ProviderConfigModel.provider_name == MANUAL_PROVIDER_NAME,
            ProviderConfigModel.is_active.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def save_manual_destination_service(destination: ManualDestination, user_id: int, request: Request) -> ProviderConfigModel:
    """
    Создаёт или обновляет ProviderConfig "MANUAL", через который
    пересылаются команды по заказам без провайдера.
    """
    db = request.state.db
    if destination.device_id is not None:
        await read_device_service(destination.device_id, user_id, request)

    result = await db.execute(
        select(ProviderConfigModel).where(
            ProviderConfigModel.user_id == user_id,
            ProviderConfigModel.provider_name == MANUAL_PROVIDER_NAME,
        )
    )
    db_config = result.scalar_one_or_none()
    if db_config is None:
        db_config = ProviderConfigModel(
            user_id=user_id,
            provider_name=MANUAL_PROVIDER_NAME,
            alias="Manual Service Destination",
        )
        db.add(db_config)

    db_config.whatsapp_group_jid = destination.whatsapp_group_jid or None
    db_config.whatsapp_number = destination.whatsapp_number or None
    db_config.telegram_chat_id = destination.telegram_chat_id or None
    db_config.device_id = destination.device_id
    db_config.is_active = True

    await db.commit()
    await db.refresh(db_config)
    await request.app.state.log.log_info("provider_config", "Получатель ручных услуг сохранён", {"id": db_config.id})
    return db_config
