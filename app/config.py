from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 365
    JWT_AUDIENCE: str = "smartaquarv2"

    # 1Confirmed identity / credit provider
    CONFIRMED_API_URL: str = "https://1confirmed.com/api/v1"
    CONFIRMED_REGISTER_TIMEOUT: float = 30.0
    CONFIRMED_PROFILE_TIMEOUT: float = 10.0
    CONFIRMED_CREDIT_TIMEOUT: float = 5.0

    DEFAULT_CREDIT: int = 500
    DEFAULT_COUNTRY_CODE: str = "MA"

    # Property image uploads (stored on local disk, served under /uploads)
    UPLOAD_DIR: str = "uploads"
    MAX_IMAGE_SIZE_MB: int = 10
    MAX_PROPERTY_IMAGES: int = 3

    # WhatsApp campaigns
    CAMPAIGN_MATCH_THRESHOLD: int = 50
    CAMPAIGN_DISPATCH_DELAY_SECONDS: float = 1.0

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    CORS_ORIGINS: str = "*"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origin_list(self) -> list[str]:
        """Comma-separated CORS_ORIGINS as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def max_image_size_bytes(self) -> int:
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024


settings = Settings()
