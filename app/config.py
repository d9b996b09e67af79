from typing import List, Optional

from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from pathlib import Path

root_dir = Path(__file__).parent.parent
env_path = root_dir / ".env"
load_dotenv(env_path)


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Cross-Selling Rules API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    CORS_ORIGINS: List[str] = ["*"]

    # Database (DATABASE_URL prioritaire, sinon PostgreSQL si configuré, sinon SQLite local)
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: Optional[str] = None

    # Shopware Admin API
    SHOPWARE_URL: Optional[str] = None
    SHOPWARE_API_KEY: Optional[str] = None
    SHOPWARE_API_SECRET: Optional[str] = None
    SHOPWARE_TIMEOUT: int = 30

    # Exécution des règles
    PRODUCT_PAGE_SIZE: int = 500
    INCLUDE_INACTIVE_PRODUCTS: bool = False
    CANDIDATES_REQUIRE_AVAILABLE: bool = True
    NUMERIC_EQUALITY_DECIMALS: int = 2

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.POSTGRES_HOST and self.POSTGRES_USER and self.POSTGRES_DB:
            return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        return f"sqlite:///{root_dir / 'cross_selling.db'}"

    @property
    def shopware_configured(self) -> bool:
        return all([self.SHOPWARE_URL, self.SHOPWARE_API_KEY, self.SHOPWARE_API_SECRET])

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"
        case_sensitive = True


try:
    settings = Settings()
except Exception as e:
    print(f"❌ Settings creation failed: {e}")
    raise
