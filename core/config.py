"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class TransportSettings(BaseModel):
    # grpcurl or inmemory
    provider: str = "grpcurl"
    grpcurl_path: str = "grpcurl"
    # maps to grpcurl -plaintext
    insecure: bool = True
    # where inline proto text is written for grpcurl; None uses the system temp dir
    temp_dir: Optional[str] = None


class SchemaSettings(BaseModel):
    # recursion bound for nested message types (generation and validation)
    max_depth: int = 32
    # report duplicated field numbers during validation
    strict_tags: bool = False


class StreamingSettings(BaseModel):
    # 0 means unbounded
    event_queue_max: int = 1000


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="gRPC Workbench")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=True)
    ENVIRONMENT: str = Field(default="development")

    # 分组配置：采用嵌套模型（环境变量以 __ 分隔，如 TRANSPORT__PROVIDER）
    transport: TransportSettings = Field(default_factory=TransportSettings)
    schema_rules: SchemaSettings = Field(default_factory=SchemaSettings)
    streaming: StreamingSettings = Field(default_factory=StreamingSettings)

    # CORS配置
    CORS_ORIGINS: list = Field(
        default=["http://localhost:1420", "http://localhost:5173"],
    )

    # 日志配置
    LOG_LEVEL: Optional[str] = Field(default=None)
    # auto | console | json
    LOG_FORMAT: str = Field(default="auto")

    # 请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
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

    @field_validator("transport")
    @classmethod
    def _validate_transport_provider(cls, v: TransportSettings) -> TransportSettings:
        provider = (v.provider or "").lower()
        if provider not in {"grpcurl", "inmemory"}:
            raise ValueError(f"未知的 transport provider: {v.provider}（可选 grpcurl / inmemory）")
        v.provider = provider
        return v


settings = Settings()
