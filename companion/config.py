from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage
    sessions_root: str = "sessions"
    backups_root: str = "backups"

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = {"env_file": ".env", "env_prefix": "COMPANION_", "extra": "ignore"}


settings = Settings()
