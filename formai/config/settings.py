from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "formai"
    db_username: str = "formai"
    db_password: str = "secret"

    # Secrets used to derive the credential encryption key and IV.
    auth_key: str = ""
    auth_salt: str = ""

    api_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    api_timeout_seconds: int = 30
