from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from expense_tracker import __version__

ENVIRONMENTS = {"development", "production", "test"}


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic-settings rules (e.g. ENVIRONMENT,
    PORT, LOG_LEVEL, DATA_DIR, DB_FILENAME, DB_PATH, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE,
    CORS_ORIGINS).
    """

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore"
    )

    # Basic app metadata
    app_name: str = "Expense Tracker API"
    version: str = __version__
    environment: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "expense-tracker.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    # Comma separated list in the environment, "*" allows any origin
    cors_origins: str = "*"

    @field_validator("environment")
    @classmethod
    def known_environment(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ENVIRONMENTS:
            raise ValueError(
                f"Unsupported environment '{v}'. Allowed: {sorted(ENVIRONMENTS)}"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def debug(self) -> bool:
        return self.environment == "development"

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        # Ensure persistence directory exists
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        if self.default_page_size < 1 or self.max_page_size < 1:
            raise ValueError("page sizes must be positive integers")
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) cannot exceed "
                f"max_page_size ({self.max_page_size})"
            )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
