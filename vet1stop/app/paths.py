"""Path utilities for ensuring directories exist."""
from vet1stop.app.config import Settings, get_settings

def ensure_dirs(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    for d in [
        settings.db_path.parent,
        settings.log_path.parent,
        settings.audit_dir,
    ]:
        d.mkdir(parents=True, exist_ok=True)
