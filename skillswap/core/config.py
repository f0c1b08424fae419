from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    app_name: str = "SkillSwap API"
    environment: str = "development"
    debug: bool = False
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Persistence: "memory" keeps everything in-process, "supabase" talks to Postgres
    database_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 60 * 24
    password_schemes: list[str] = ["bcrypt"]

    # Outbound mail; an empty host disables delivery
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = "noreply@skillswap.app"

    upload_dir: str = "uploads"
    max_upload_size: int = 5 * 1024 * 1024

    exclude_flagged_ratings: bool = False
    report_bucket_limit: int = 12
    daily_bucket_limit: int = 31

    class Config:
        env_file = ".env"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
