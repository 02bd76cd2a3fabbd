# smmrelay/services/panel.py

from sqlalchemy.future import select
from fastapi import HTTPException, Request

from smmrelay.models.panel import Panel as PanelModel
from smmrelay.schemas.panel import PanelCreate


async def read_panels_service(request: Request, user_id: int) -> list[PanelModel]:
    db = request.state.db
    result = await db.execute(
        select(PanelModel).where(PanelModel.user_id == user_id).order_by(PanelModel.id)
    )
    return list(result.scalars().all())


async def read_panel_service(id: int, user_id: int, request: Request) -> PanelModel:
    """
    Панель пользователя по ID, иначе 404.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(
        select(PanelModel).where(PanelModel.id == id, PanelModel.user_id == user_id)
    )
    db_panel = result.scalar_one_or_none()
    if db_panel is None:
        await log.log_error("panel", "Панель не найдена", {"id": id, "user_id": user_id})
        raise HTTPException(status_code=404, detail="Panel not found")
    return db_panel


async def create_panel_service(panel: PanelCreate, user_id: int, request: Request) -> PanelModel:
    db = request.state.db
    log = request.app.state.log

    db_panel = PanelModel(user_id=user_id, **panel.model_dump())
    db.add(db_panel)
    await db.commit()
    await db.refresh(db_panel)

    await log.log_info("panel", "Панель создана", {"id": db_panel.id})
    return db_panel


async def delete_panel_service(id: int, user_id: int, request: Request) -> None:
    db = request.state.db
    db_panel = await read_panel_service(id, user_id, request)
    await db.delete(db_panel)
    await db.commit()
    await request.app.state.log.log_info("panel", "Панель удалена", {"id": id})
