from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from typing import Optional

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "CMS Admin"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"

    # Plugin runtime settings
    plugins_dir: str = "data/plugins"
    plugin_storage_root: str = "plugins"
    core_plugins: list[str] = ["seo-toolkit"]

    # Persistence settings (unset -> in-memory plugin store)
    database_url: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
