from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Noxion"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Notion settings (default blog; tenants carry their own credentials)
    notion_token: str = ""
    notion_database_id: str = ""
    notion_api_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    notion_timeout_seconds: float = 30.0

    # Cache TTLs in seconds
    cache_ttl_posts: int = 300
    cache_ttl_post: int = 600
    cache_ttl_content: int = 900
    cache_cleanup_interval_seconds: int = 60

    # Plugin settings
    plugins_config_file: str = "data/plugins_config.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
