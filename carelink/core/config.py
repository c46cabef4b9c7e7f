# carelink/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore")

    APP_NAME: str = "CareLink API"

    JWT_SECRET: str = Field(...)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # si viene DATABASE_URL completo, tiene prioridad sobre DB_*
    DATABASE_URL: str | None = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "carelink"
    DB_ECHO: bool = False

    # zona horaria de referencia para "hoy" y para las horas de los turnos
    TIMEZONE: str = "UTC"
    ENFORCE_SLOT_MENU: bool = False
    SLOT_FIRST_HOUR: int = 10
    SLOT_LAST_HOUR: int = 19

    CONSULTATION_BASE_URL: str = "https://telemed.carelink/session"
    PRESCRIPTION_DEFAULT_REFILLS: int = 3

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    LOG_LEVEL: str = "INFO"

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4")

settings = Settings()  # type: ignore[call-arg]
