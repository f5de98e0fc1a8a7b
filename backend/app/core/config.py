# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import Optional
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn 时（不走 Docker），才会用到 config.py 里的 model_config.env_file=".env"：
# 此时它会读取 backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
        populate_by_name=True,
    )

    # ========= project config =========
    PROJECT_NAME: str = "Image Captioner"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"


    # ========= Database =========
    # 容器内默认连 docker 网络里的 "db" 服务；测试用 sqlite
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://captioner:captioner@db:5432/captioner_dev",
        alias="DATABASE_URL",
    )
    # 可选：配置后 bulk/webhook 任务按 shop 加锁串行
    REDIS_URL: Optional[str] = Field(default=None, alias="REDIS_URL")
    SHOP_LOCK_TIMEOUT_SEC: int = Field(60 * 60, ge=60, alias="SHOP_LOCK_TIMEOUT_SEC")            # 锁自动过期，防止 worker 崩溃后死锁
    SHOP_LOCK_BLOCKING_TIMEOUT_SEC: int = Field(60 * 30, ge=1, alias="SHOP_LOCK_BLOCKING_TIMEOUT_SEC")
    # webhook 只短暂等锁：等不到就失败，让 Shopify 重投（不能超过 webhook 超时）
    SHOP_LOCK_WEBHOOK_BLOCKING_TIMEOUT_SEC: int = Field(3, ge=1, alias="SHOP_LOCK_WEBHOOK_BLOCKING_TIMEOUT_SEC")


    # ========= celery config =========
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    CELERY_TIMEZONE: str = "UTC"
    # 本地调试才打开：bulk 任务在 API 进程的后台任务里跑，webhook 同步处理
    SYNC_TASKS_INLINE: bool = Field(default=False, alias="SYNC_TASKS_INLINE")


    # ========= Shopify Admin API =========
    SHOPIFY_API_VERSION: str = Field("2025-07", alias="SHOPIFY_API_VERSION")
    SHOPIFY_WEBHOOK_SECRET: Optional[str] = Field(None, alias="SHOPIFY_WEBHOOK_SECRET")

    # 网络/HTTP 层 配置 测试时调参
    SHOPIFY_HTTP_TIMEOUT: int = Field(30, alias="SHOPIFY_HTTP_TIMEOUT")
    SHOPIFY_HTTP_RETRIES: int = Field(3, alias="SHOPIFY_HTTP_RETRIES")
    SHOPIFY_HTTP_BACKOFF_MS: int = Field(200, alias="SHOPIFY_HTTP_BACKOFF_MS")

    # 分页：bulk 每页 25（与 Visionati 单批 URL 数量匹配），列表页 10
    BULK_PAGE_SIZE: int = Field(25, ge=1, le=250, alias="BULK_PAGE_SIZE")
    LISTING_PAGE_SIZE: int = Field(10, ge=1, le=250, alias="LISTING_PAGE_SIZE")


    # ========= Visionati =========
    VISIONATI_API_URL: str = Field("https://api.visionati.com/api/fetch", alias="VISIONATI_API_URL")
    VISIONATI_API_KEY: Optional[SecretStr] = Field(None, alias="VISIONATI_API_KEY")     # shop 未单独配置 api_key 时使用
    VISIONATI_POLL_INTERVAL_SEC: float = Field(1.0, ge=0, alias="VISIONATI_POLL_INTERVAL_SEC")
    VISIONATI_HTTP_TIMEOUT: int = Field(30, ge=1, alias="VISIONATI_HTTP_TIMEOUT")
    VISIONATI_DEFAULT_ROLE: str = Field("ecommerce", alias="VISIONATI_DEFAULT_ROLE")
    VISIONATI_DEFAULT_BACKEND: str = Field("gemini", alias="VISIONATI_DEFAULT_BACKEND")


    @property
    def visionati_api_key(self) -> Optional[str]:
        key = self.VISIONATI_API_KEY
        if key is None:
            return None
        return key.get_secret_value() or None


settings = Settings()  # 只从环境读取（含 .env）
