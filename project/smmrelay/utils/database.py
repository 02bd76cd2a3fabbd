# smmrelay/utils/database.py

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.future import select
from smmrelay.config import settings
from smmrelay.utils.security import hash_password

# ────────────── Base для моделей ──────────────
Base = declarative_base()

# ────────────── Асинхронный движок ──────────────
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.LOG_PRINT_DB.lower() in ("1", "true", "yes")
)

# ────────────── Фабрика сессий ──────────────
# объекты остаются читаемыми после commit: заказы и правила маршрутизации
# живут дольше сессии, в которой загружены
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def create_tables(bind=None):
    """Создаёт все таблицы (если ещё не созданы)."""
    import smmrelay.models  # noqa: F401  регистрирует модели в Base.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ────────────── Инициализация базы данных ──────────────
async def init_db(session_factory=AsyncSessionLocal, bind=None):
    """
    Создаёт таблицы и проверяет наличие администратора.
    Если администратора нет, создаёт его с логином и паролем
    из AUTH_LOGIN / AUTH_PASSWORD (пароль хранится в виде хэша).
    """
    await create_tables(bind)

    from smmrelay.models.user import User
    async with session_factory() as session:
        result = await session.execute(select(User).where(User.is_admin.is_(True)).limit(1))
        if result.scalar_one_or_none() is not None:
            return None

        admin_user = User(
            name="Administrator",
            login=settings.AUTH_LOGIN,
            password=hash_password(settings.AUTH_PASSWORD),
            is_admin=True
        )
        session.add(admin_user)
        await session.commit()
        await session.refresh(admin_user)
        return admin_user
