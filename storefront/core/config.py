from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Удаленное хранилище (REST API строк + auth)
    REMOTE_URL: str = "http://localhost:54321"
    REMOTE_ANON_KEY: str = ""
    REMOTE_TIMEOUT_SECONDS: float = 10.0

    # Проверка сессии при старте ограничена по времени,
    # чтобы интерфейс не ждал недоступный бэкенд
    SESSION_CHECK_TIMEOUT_SECONDS: float = 4.0

    # Локальный снимок состояния (identity + избранное)
    SNAPSHOT_BACKEND: str = "file"  # "file" или "redis"
    SNAPSHOT_DIR: str = ".storefront"
    SNAPSHOT_IDENTITY_KEY: str = "matita_persisted_user"
    SNAPSHOT_FAVORITES_KEY: str = "matita_favs"
    # Токен удаленной сессии, им владеет шлюз аутентификации
    SNAPSHOT_SESSION_KEY: str = "matita_session"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Брендинг и изображения
    SITE_CONFIG_ROW_ID: str = "global"
    DEFAULT_LOGO_URL: str = "https://i.ibb.co/L6v3X8G/matita-logo.png"
    IMAGE_CDN_URL: str = "https://res.cloudinary.com/dllm8ggob/image/upload"
    IMAGE_PLACEHOLDER_URL: str = "https://via.placeholder.com/600x600?text=Matita"

    DASHBOARD_CACHE_TTL_SECONDS: int = 3600

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
