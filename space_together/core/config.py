from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    mongodb_uri: str = Field("mongodb://localhost:27017", alias="MONGODB_URI")
    main_db_name: str = Field("space_together", alias="MAIN_DB_NAME")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    school_token_secret_key: Optional[str] = Field(None, alias="SCHOOL_TOKEN_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    school_token_expire_minutes: int = Field(60 * 24, alias="SCHOOL_TOKEN_EXPIRE_MINUTES")

    join_request_expire_days: int = Field(7, alias="JOIN_REQUEST_EXPIRE_DAYS")
    event_buffer_size: int = Field(100, alias="EVENT_BUFFER_SIZE")

    cloudinary_cloud_name: Optional[str] = Field(None, alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: Optional[str] = Field(None, alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: Optional[str] = Field(None, alias="CLOUDINARY_API_SECRET")
    cloudinary_folder: str = Field("space-together", alias="CLOUDINARY_FOLDER")

    platform_admin_email: Optional[str] = Field(None, alias="PLATFORM_ADMIN_EMAIL")
    platform_admin_password: Optional[str] = Field(None, alias="PLATFORM_ADMIN_PASSWORD")
    platform_admin_name: str = Field("Platform Admin", alias="PLATFORM_ADMIN_NAME")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def school_secret(self) -> str:
        return self.school_token_secret_key or self.jwt_secret_key


settings = Settings()
