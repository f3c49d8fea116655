from pathlib import Path

from dotenv import dotenv_values
from pydantic_settings import BaseSettings

_SHARED_ENV_FILE = Path.home() / "env" / ".env.dev"
_env_vars = dotenv_values(str(_SHARED_ENV_FILE)) if _SHARED_ENV_FILE.exists() else {}


class Settings(BaseSettings):
    app_name: str = "Pilgrim Housing"
    debug: bool = False
    database_url: str = ""
    log_level: str = "INFO"
    bulk_max_rooms: int = 500
    max_open_sessions: int = 200

    model_config = {
        "env_prefix": "HOUSING_",
        "env_file": ".env",
        "extra": "ignore",
    }

    def model_post_init(self, __context):
        # the booking subsystem shares its DATABASE_URL through the dev env file
        if not self.database_url:
            self.database_url = _env_vars.get(
                "DATABASE_URL", "sqlite+aiosqlite:///data/housing.db"
            )


settings = Settings()
