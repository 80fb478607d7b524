from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "POS Ledger"
    DATABASE_URL: str = "sqlite:///./posledger.db"

    # Auth (bearer JWT)
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 72

    # Created on startup when the users table is empty
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin"

    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
