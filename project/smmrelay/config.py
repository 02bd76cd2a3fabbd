# smmrelay/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    AUTH_SECRET_KEY: str
    AUTH_TOKEN_EXPIRE_MINUTES: int = 60
    AUTH_LOGIN: str = "admin"           # логин первого администратора
    AUTH_PASSWORD: str = "admin"        # пароль первого администратора

    DATABASE_URL: str = "sqlite+aiosqlite:///./smmrelay.db"

    # WhatsApp-шлюз (HTTP API поверх подключённых устройств)
    WA_GATEWAY_URL: str = "http://127.0.0.1:3001"
    WA_GATEWAY_TOKEN: str = ""
    WA_GATEWAY_TIMEOUT: float = 15.0

    LOG_DIR: str = "log"
    LOG_PRINT: str = "1"
    LOG_PRINT_DB: str = "0"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
