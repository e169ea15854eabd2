from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Used for first-login upserts when RLS blocks the anon key
    storage_bucket: str = "accounts"

    # Record store
    store_default_limit: int = 1000
    local_store_path: str = ".taskboard/local_store.db"
    local_store_prefix: str = "taskboard"

    # Identity
    auth_debounce_ms: int = 50
    invite_base_url: str = "http://localhost:3000/accept-account-invite"

    # App
    app_name: str = "taskboard"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def auth_debounce_seconds(self) -> float:
        return max(self.auth_debounce_ms, 0) / 1000.0

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def invite_url(self, code: str) -> str:
        return f"{self.invite_base_url.rstrip('/')}/{code}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
