"""Process configuration via environment variables."""

from pydantic_settings import BaseSettings

from venuegate.config import FlagBackend, VenueGateConfig
from venuegate.persistence.paths import db_path_in


class Settings(BaseSettings):
    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # Event reconciliation
    debounce_window_s: float = 2.0

    # Onboarding
    total_events_required: int = 3

    # Persisted flags
    flag_backend: FlagBackend = FlagBackend.AUTO
    flag_db_path: str | None = None
    data_dir: str | None = None

    model_config = {
        "env_prefix": "VENUEGATE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def to_config(self) -> VenueGateConfig:
        db_path = self.flag_db_path
        if db_path is None and self.data_dir is not None:
            db_path = str(db_path_in(self.data_dir))
        return VenueGateConfig(
            debounce_window_s=self.debounce_window_s,
            total_events_required=self.total_events_required,
            flag_backend=self.flag_backend,
            flag_db_path=db_path,
        )
