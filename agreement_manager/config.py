# agreement_manager/config.py
from functools import lru_cache
from typing import List, Optional

from pydantic import EmailStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Server ---
    host: str = "0.0.0.0"
    port: int = 8000

    # --- Database ---
    database_url: str = "sqlite:///agreement_manager.db"

    # --- Security / JWT ---
    jwt_secret: str = "dev-secret-please-change"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    enable_hsts: bool = True

    # --- CORS ---
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # --- Proxy ---
    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    trust_forwarded_for: bool = False

    # --- Logging ---
    log_level: str = "INFO"
    log_json: bool = True

    # --- Agreements ---
    default_cc_email: EmailStr = "support@ramnathshetty.com"

    # --- WhatsApp (Twilio) ---
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_number: Optional[str] = None
    twilio_content_sid: Optional[str] = None
    whatsapp_country_code: str = "+91"
    whatsapp_sender_name: str = "RentoDoc Team"

    # --- Offline snapshots ---
    snapshot_dir: str = "backups/snapshots"

    @property
    def twilio_is_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_whatsapp_number)


@lru_cache
def get_settings() -> Settings:
    return Settings()
