from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Minimum average score (0-100) for a PROMOTE recommendation
    promotion_pass_threshold: Decimal = Field(Decimal("50"), alias="PROMOTION_PASS_THRESHOLD", ge=0, le=100)
    default_promotion_reason: str = Field("End of Year Promotion", alias="DEFAULT_PROMOTION_REASON")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
