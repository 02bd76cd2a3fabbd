# smmrelay/main.py

from contextlib import asynccontextmanager
import multiprocessing
import os

from dotenv import load_dotenv

# --- загрузка переменных окружения до чтения settings ---
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from smmrelay.middleware.db_middleware import DBSessionMiddleware
from smmrelay.services.channel import TelegramChannel, WhatsAppGatewayChannel
from smmrelay.services.forwarding.service import GroupForwardingService
from smmrelay.services.forwarding.store import ForwardingStore
from smmrelay.utils.database import AsyncSessionLocal, engine, init_db
from smmrelay.utils.log import Log

# --- sync логгер для раннего старта ---
boot_log = Log()
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="Импорты main.py выполнены")


def create_app(session_factory=None, bind=None, channel=None, log: Log | None = None) -> FastAPI:
    """
    Собирает приложение. Зависимости можно передать явно (тесты, другая БД),
    по умолчанию берутся из settings.
    """
    session_factory = session_factory or AsyncSessionLocal
    bind = bind or engine

    # ────────────── Lifespan ──────────────
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        boot_log.log_info_sync(target="startup", message="lifespan: startup начат")

        await init_db(session_factory, bind)
        boot_log.log_info_sync(target="startup", message="База инициализирована")

        app.state.log = log or Log()
        app.state.session_factory = session_factory
        app.state.channel = channel or WhatsAppGatewayChannel()
        app.state.forwarding = GroupForwardingService(
            store=ForwardingStore(session_factory),
            channel=app.state.channel,
            log=app.state.log,
            telegram=TelegramChannel(),
        )
        await app.state.log.log_info(target="startup", message="Сервис пересылки инициализирован")

        yield

        # shutdown
        await app.state.log.log_info(target="shutdown", message="Остановка приложения")
        await app.state.log.shutdown()
        boot_log.log_info_sync(target="shutdown", message="Log корректно завершён")

    app = FastAPI(title="SMM Relay API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # DB middleware для request.state.db
    app.add_middleware(DBSessionMiddleware, session_factory=session_factory)

    @app.get("/")
    def read_root():
        return {"message": "SMM Relay is running"}

    # ────────────── Подключение роутов ──────────────
    from smmrelay.routes import auth, panels, devices, orders, provider_groups, provider_config

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(panels.router, prefix="/panels", tags=["panels"])
    app.include_router(devices.router, prefix="/devices", tags=["devices"])
    app.include_router(orders.router, prefix="/orders", tags=["orders"])
    app.include_router(provider_groups.router, prefix="/provider-groups", tags=["provider-groups"])
    app.include_router(provider_config.router, prefix="/provider-config", tags=["provider-config"])

    return app


app = create_app()

# ────────────── Запуск uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Запуск uvicorn.run")
    uvicorn.run(
        "smmrelay.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=True
    )
