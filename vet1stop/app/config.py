"""Application configuration loaded from .env and defaults."""
from pathlib import Path
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    db_path: Path = PROJECT_ROOT / "data" / "vet1stop.db"
    log_path: Path = PROJECT_ROOT / "data" / "logs" / "app.log"
    log_level: str = "INFO"
    audit_dir: Path = PROJECT_ROOT / "data" / "logs" / "audit"
    web_host: str = "127.0.0.1"
    web_port: int = 8787
    related_limit: int = 3

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"

def get_settings() -> Settings:
    return Settings()
