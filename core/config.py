"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Optional


class StorageSettings(BaseModel):
    type: str = "local"  # local, cloudinary, vercel-blob, s3
    prefix: Optional[str] = None  # key folder, defaults to "uploads"
    public_base_url: Optional[str] = None
    # Cloudinary specific
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_resource_type: str = "image"
    # Vercel Blob specific
    blob_read_write_token: Optional[str] = None
    blob_api_url: str = "https://blob.vercel-storage.com"
    # Transport
    timeout: int = 30


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Knowledge Storage", env=["PROJECT_NAME", "APP_NAME"])
    VERSION: str = Field(default="1.0.0", env=["VERSION", "APP_VERSION"])
    DEBUG: bool = Field(default=True, env="DEBUG")
    ENVIRONMENT: str = Field(default="development", env="ENVIRONMENT")

    # 日志配置：未设置时由 DEBUG 决定级别与输出格式
    LOG_LEVEL: Optional[str] = Field(default=None, env="LOG_LEVEL")
    LOG_JSON: Optional[bool] = Field(default=None, env="LOG_JSON")

    # CORS配置
    CORS_ORIGINS: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        env="CORS_ORIGINS"
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)

    # 集合文件上传限制
    MAX_UPLOAD_SIZE: int = Field(default=10 * 1024 * 1024, env="MAX_UPLOAD_SIZE")  # 10MB
    ALLOWED_UPLOAD_TYPES: Annotated[list[str], NoDecode] = Field(
        default=[
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "text/plain",
            "text/markdown",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        ],
        env="ALLOWED_UPLOAD_TYPES",
    )

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", "ALLOWED_UPLOAD_TYPES", mode="before")
    @classmethod
    def _parse_list(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
